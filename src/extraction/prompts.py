"""YAML prompt templates for the completion oracle."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from src.utils.config import DEFAULT_PROMPTS_PATH


class PromptLibrary:
    """Loads ``config/prompts.yaml`` and renders its ``user_template`` entries."""

    def __init__(self, prompts_path: str | Path = DEFAULT_PROMPTS_PATH) -> None:
        self.prompts_path = Path(prompts_path)
        self.prompts = self._load_prompts(self.prompts_path)

    def _load_prompts(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Prompt template file not found: {path}")
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Prompt template root must be a mapping/dict: {path}")
        return data

    def render(self, key: str, **context: Any) -> str:
        """Render the template ``key`` with ``context`` placeholders.

        Raises:
            KeyError: If the key or one of its placeholders is missing
        """
        if key not in self.prompts:
            raise KeyError(f"Prompt key not found in template: {key}")

        prompt = self.prompts.get(key) or {}
        template = str(prompt.get("user_template", ""))
        try:
            return template.format(**context).strip()
        except KeyError as exc:
            missing = exc.args[0]
            raise KeyError(f"Missing placeholder '{missing}' in prompt context for '{key}'")
