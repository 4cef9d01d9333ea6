"""Prompt catalog protocol and bundled implementations."""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

LANGUAGE_PLACEHOLDER = "{programming_language}"
PROMPT_SUFFIXES = (".md", ".txt")


class PromptCatalogError(Exception):
    """Prompt catalog could not be loaded."""


@runtime_checkable
class PromptCatalog(Protocol):
    """Source of per-skill initializing prompts."""

    def load_prompts(self) -> None: ...

    def get_available_skills(self) -> list[str]: ...

    def get_skill_prompt(
        self, skill_name: str, programming_language: str | None = None
    ) -> str | None: ...

    def requires_programming_language(self, skill_name: str) -> bool: ...


def inject_programming_language(prompt: str, programming_language: str) -> str:
    """Specialise a prompt template for a programming language.

    Replaces every ``{programming_language}`` placeholder; templates without a
    placeholder get a closing instruction instead.
    """
    if LANGUAGE_PLACEHOLDER in prompt:
        return prompt.replace(LANGUAGE_PLACEHOLDER, programming_language)
    return f"{prompt.rstrip()}\n\nWrite all code examples in {programming_language}."


class StaticPromptCatalog:
    """In-memory catalog backed by a ``{skill: prompt}`` mapping."""

    def __init__(
        self,
        prompts: Mapping[str, str],
        language_skills: Iterable[str] = ("dsa",),
    ):
        self._source = dict(prompts)
        self._prompts: dict[str, str] = {}
        self.language_skills = frozenset(language_skills)

    def load_prompts(self) -> None:
        self._prompts = {skill: text for skill, text in self._source.items() if text}

    def get_available_skills(self) -> list[str]:
        return list(self._prompts)

    def get_skill_prompt(
        self, skill_name: str, programming_language: str | None = None
    ) -> str | None:
        prompt = self._prompts.get(skill_name)
        if prompt is None:
            return None
        if programming_language and self.requires_programming_language(skill_name):
            return inject_programming_language(prompt, programming_language)
        return prompt

    def requires_programming_language(self, skill_name: str) -> bool:
        return skill_name in self.language_skills


class DirectoryPromptCatalog(StaticPromptCatalog):
    """Catalog reading one ``<skill>.md`` or ``<skill>.txt`` file per skill.

    Usage::

        catalog = DirectoryPromptCatalog("~/.convmem/prompts", language_skills=["dsa"])
        catalog.load_prompts()
        catalog.get_skill_prompt("dsa", "python")
    """

    def __init__(self, directory: str | Path, language_skills: Iterable[str] = ("dsa",)):
        super().__init__({}, language_skills=language_skills)
        self.directory = Path(directory).expanduser()

    def load_prompts(self) -> None:
        """(Re)read every prompt file in the directory.

        Raises:
            PromptCatalogError: If the directory does not exist or cannot be read
        """
        if not self.directory.is_dir():
            raise PromptCatalogError(f"Prompt directory not found: {self.directory}")

        prompts: dict[str, str] = {}
        try:
            for path in sorted(self.directory.iterdir()):
                if path.suffix not in PROMPT_SUFFIXES or not path.is_file():
                    continue
                if path.stem in prompts:
                    logger.warning("Duplicate prompt for skill '%s', ignoring %s", path.stem, path)
                    continue
                text = path.read_text(encoding="utf-8").strip()
                if text:
                    prompts[path.stem] = text
        except OSError as e:
            raise PromptCatalogError(f"Failed to read prompts from {self.directory}: {e}") from e

        self._source = prompts
        super().load_prompts()
        logger.info("Loaded %d skill prompts from %s", len(self._prompts), self.directory)
