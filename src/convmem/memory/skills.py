"""Registry of per-skill initializing prompts."""

import logging

from convmem.memory.schema import SkillContext
from convmem.prompts.catalog import PromptCatalog

logger = logging.getLogger(__name__)


class SkillContextRegistry:
    """Holds one :class:`SkillContext` per skill, seeded from a prompt catalog."""

    def __init__(self) -> None:
        self._contexts: dict[str, SkillContext] = {}

    def seed(self, catalog: PromptCatalog) -> list[SkillContext]:
        """Load the catalog and register a context for every skill with a prompt.

        Replaces any previously seeded contexts. Catalog errors propagate to
        the caller.

        Args:
            catalog: Prompt source

        Returns:
            Newly registered contexts in catalog order
        """
        catalog.load_prompts()
        contexts: dict[str, SkillContext] = {}
        for skill in catalog.get_available_skills():
            prompt = catalog.get_skill_prompt(skill)
            if not prompt:
                logger.debug("Skill '%s' has no prompt, skipping", skill)
                continue
            contexts[skill] = SkillContext(skill_name=skill, initializing_prompt=prompt)

        self._contexts = contexts
        return list(contexts.values())

    def get(self, skill_name: str) -> SkillContext | None:
        return self._contexts.get(skill_name)

    def skills(self) -> list[str]:
        return list(self._contexts)

    def clear(self) -> None:
        self._contexts = {}

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, skill_name: object) -> bool:
        return skill_name in self._contexts
