"""DocRefine API - document revision session service.

Analyzes a document, proposes a plan of expert revision steps and applies
them one by one (or in a chain) through the configured LLM provider.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docrefine import __version__
from docrefine.api.routes import session
from docrefine.prompts import get_prompt_registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Loading prompt templates...")
    prompt_registry = get_prompt_registry()
    logger.info(f"Loaded {prompt_registry.count} prompt templates: {', '.join(prompt_registry.keys())}")

    controller = session.get_session()
    config = controller.config
    logger.info(
        f"Provider {config.provider.value}, model {config.model}, "
        f"configured={config.is_configured()}, pacing delay {controller.pacing_delay}s"
    )

    logger.info("DocRefine API ready")
    yield
    logger.info("Shutting down DocRefine API")


app = FastAPI(
    title="DocRefine API",
    description="""
## Document Revision Sessions

Turns a draft into an expert-grade document in discrete, reviewable steps.

### Key Endpoints

- `POST /v1/session/analyze` - Analyze a document and get a revision plan
- `POST /v1/session/steps/{id}/run` - Apply one step
- `POST /v1/session/run-all` - Apply all pending steps in order
- `GET /v1/session` - Current plan, document and progress
""",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session.router, prefix="/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "DocRefine API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "models": "/v1/models",
            "session": "/v1/session",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    controller = session.get_session()
    return {
        "status": "healthy",
        "prompts_loaded": get_prompt_registry().count,
        "configured": controller.config.is_configured(),
        "busy": controller.is_busy,
    }
