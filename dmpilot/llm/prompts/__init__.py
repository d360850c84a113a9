"""
Prompt Management Module

Loads LLM prompt templates from the .txt files next to this module, so a
prompt can be tuned without touching the code that sends it.
"""

from __future__ import annotations

from pathlib import Path

PROMPTS_DIR = Path(__file__).parent


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self):
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Raises:
            FileNotFoundError: If no <prompt_name>.txt exists
        """
        if prompt_name not in self._cache:
            prompt_path = PROMPTS_DIR / f"{prompt_name}.txt"

            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            self._cache[prompt_name] = prompt_path.read_text(encoding="utf-8")

        return self._cache[prompt_name]

    def render(self, prompt_name: str, **kwargs: object) -> str:
        """Load a template and inject variables with str.format()."""
        return self.load_prompt(prompt_name).format(**kwargs)


_loader = PromptLoader()


def render_prompt(prompt_name: str, **kwargs: object) -> str:
    return _loader.render(prompt_name, **kwargs)
