import copy
import threading
from typing import Any, Callable, Optional

import pytest

from docrefine.config import LLMProvider, ProviderConfig
from docrefine.executor import RunController, StepExecutor
from docrefine.orchestrator import PlanGenerator

DRAFT = "Black-Scholes prices European options. It assumes constant volatility."


def make_payload(*step_names: str) -> dict[str, Any]:
    names = step_names or ("Derive the PDE", "Add Greeks")
    return {
        "analysis": {
            "category": "derivatives pricing",
            "assignedPersona": "senior quantitative analyst",
            "currentLevel": "undergraduate notes",
            "targetLevel": "desk-grade model documentation",
            "summary": "Short description of Black-Scholes.",
            "gapAnalysis": {
                "professionalStandards": "Arbitrage-free pricing with explicit assumptions",
                "missingContent": "Derivation, Greeks and model limitations",
            },
        },
        "steps": [
            {
                "id": f"s{i + 1}",
                "name": name,
                "description": f"Instruction for {name}",
                "reasoning": f"Why {name}",
            }
            for i, name in enumerate(names)
        ],
    }


class ScriptedAnalysisService:
    """Returns queued payloads in order; the last one repeats."""

    def __init__(self, *payloads: Any, error: Optional[Exception] = None):
        self.payloads = list(payloads) or [make_payload()]
        self.error = error
        self.calls: list[str] = []

    def analyze(self, text, config):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        payload = self.payloads.pop(0) if len(self.payloads) > 1 else self.payloads[0]
        return copy.deepcopy(payload)


class BlockingAnalysisService(ScriptedAnalysisService):
    """Lets the first ``free_calls`` through, then blocks until released."""

    def __init__(self, *payloads: Any, free_calls: int = 1):
        super().__init__(*payloads)
        self.free_calls = free_calls
        self.entered = threading.Event()
        self.release = threading.Event()

    def analyze(self, text, config):
        if len(self.calls) >= self.free_calls:
            self.entered.set()
            assert self.release.wait(timeout=5), "test never released the analysis call"
        return super().analyze(text, config)


class ScriptedRevisionService:
    """Appends a marker per step to the text; fails for ids in ``fail_ids``."""

    def __init__(
        self,
        fail_ids: tuple[str, ...] = (),
        responses: Optional[dict[str, Any]] = None,
        before_return: Optional[Callable[[Any], None]] = None,
    ):
        self.fail_ids = set(fail_ids)
        self.responses = responses or {}
        self.before_return = before_return
        self.calls: list[tuple[str, str]] = []

    def revise(self, text, step, analysis, config):
        self.calls.append((step.id, text))
        if self.before_return is not None:
            self.before_return(step)
        if step.id in self.fail_ids:
            raise RuntimeError("model timed out")
        if step.id in self.responses:
            return copy.deepcopy(self.responses[step.id])
        return {
            "revisedText": f"{text}\n[{step.name}]",
            "diffSummary": f"Added {step.name.lower()}",
        }


class BlockingRevisionService(ScriptedRevisionService):
    """Blocks inside the revision call until released."""

    def __init__(self, **kwargs):
        super().__init__(before_return=self._block, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def _block(self, step):
        self.entered.set()
        assert self.release.wait(timeout=5), "test never released the revision call"


@pytest.fixture
def config():
    return ProviderConfig(provider=LLMProvider.OPENAI, api_key="sk-test-1234", model="gpt-4o")


@pytest.fixture
def analysis_service():
    return ScriptedAnalysisService()


@pytest.fixture
def revision_service():
    return ScriptedRevisionService()


def build_controller(config, analysis_service, revision_service) -> RunController:
    return RunController(
        config,
        plan_generator=PlanGenerator(analysis_service),
        step_executor=StepExecutor(revision_service),
    )


@pytest.fixture
def controller(config, analysis_service, revision_service):
    return build_controller(config, analysis_service, revision_service)


@pytest.fixture
def started(controller):
    """Controller with an analyzed draft: steps s1, s2 PENDING, version 1."""
    controller.start(DRAFT)
    return controller
