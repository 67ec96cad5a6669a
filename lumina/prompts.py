from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from string import Template


class PromptLoadError(RuntimeError):
    pass


PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Read `prompts/<name>`, normalised to end with a single newline.

    Prompt files never change while the server runs, so reads are cached.
    """

    path = PROMPTS_DIR / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e


def render_prompt(name: str, **fields: object) -> str:
    """Fill `$placeholders` in a prompt file; a missing field is an error."""

    try:
        return Template(load_prompt(name)).substitute({k: str(v) for k, v in fields.items()})
    except KeyError as e:
        raise PromptLoadError(f"Prompt {name} needs field {e}") from e
