"""Registry for prompt templates.

Loads prompt definitions from YAML and renders them with ``str.format``.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFINITIONS_DIR = Path(__file__).parent / "definitions"


class PromptTemplate(BaseModel):
    """A system prompt plus a user-message template."""

    key: str
    description: str = ""
    system: str
    template: str = Field(..., description="User message with {placeholders}")

    def render(self, **values: str) -> tuple[str, str]:
        """Return (system_prompt, user_message) with placeholders filled."""
        return self.system.format(**values).strip(), self.template.format(**values)


class PromptRegistry:
    """Loads and serves prompt templates."""

    def __init__(self, definitions_dir: Optional[Path] = None) -> None:
        self.definitions_dir = definitions_dir or DEFINITIONS_DIR
        self._prompts: dict[str, PromptTemplate] = {}
        self._load_prompts()

    def _load_prompts(self) -> None:
        if not self.definitions_dir.exists():
            logger.warning(f"Prompt definitions directory not found: {self.definitions_dir}")
            return

        for yaml_file in sorted(self.definitions_dir.glob("*.yaml")):
            with open(yaml_file, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            prompt = PromptTemplate(**data)
            self._prompts[prompt.key] = prompt
            logger.debug(f"Loaded prompt: {prompt.key}")

        logger.info(f"Loaded {len(self._prompts)} prompt templates")

    def get(self, key: str) -> PromptTemplate:
        """Get a prompt template by key.

        Raises:
            KeyError: If no template with that key was loaded
        """
        try:
            return self._prompts[key]
        except KeyError:
            raise KeyError(f"Prompt template not found: {key}") from None

    def keys(self) -> list[str]:
        return sorted(self._prompts)

    @property
    def count(self) -> int:
        return len(self._prompts)


_registry: Optional[PromptRegistry] = None


def get_prompt_registry() -> PromptRegistry:
    """Get the global prompt registry instance."""
    global _registry
    if _registry is None:
        _registry = PromptRegistry()
    return _registry
