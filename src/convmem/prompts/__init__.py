"""Skill prompt catalogs.

A catalog supplies one initializing prompt per skill. The session memory
seeds its log from a catalog at startup and after every ``clear()``.
"""

from convmem.prompts.catalog import (
    DirectoryPromptCatalog,
    PromptCatalog,
    PromptCatalogError,
    StaticPromptCatalog,
)

__all__ = [
    "DirectoryPromptCatalog",
    "PromptCatalog",
    "PromptCatalogError",
    "StaticPromptCatalog",
]
