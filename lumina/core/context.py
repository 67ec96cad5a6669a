from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BaseAgentContext:
    """Shared instructions for every LLM call."""

    system_prompt: str


@dataclass(frozen=True, slots=True)
class RenderedContext:
    """Final, merged context passed into the LLM agent."""

    system_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}]


LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "tr": "Turkish",
}


def compose_writer_context(*, base: BaseAgentContext, language: str) -> RenderedContext:
    name = LANGUAGE_NAMES.get(language.casefold(), language)
    parts = [
        base.system_prompt.strip(),
        "\n".join(
            [
                "LANGUAGE CONTEXT:",
                f"- language_code: {language}",
                f"- language_name: {name}",
                "- Every word you return must be a real, common word in this language, written in upper case.",
            ]
        ),
    ]
    return RenderedContext(system_prompt="\n\n".join(p for p in parts if p.strip()).strip())
