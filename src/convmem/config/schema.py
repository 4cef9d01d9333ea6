"""Pydantic models for convmem.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class SessionConfig(BaseModel):
    """Session memory sizing."""

    max_memory_size: int = Field(
        default=1000,
        description="Event count above which hard maintenance (eviction + consolidation) runs",
        gt=0,
    )
    compression_threshold: int = Field(
        default=800,
        description="Event count above which old event content is compressed",
        gt=0,
    )
    default_skill: str = Field(default="general", description="Skill active at startup")


class MaintenanceConfig(BaseModel):
    """Maintenance policy tuning."""

    compression_enabled: bool = Field(default=True, description="Enable soft compression")
    system_event_max_age_hours: float = Field(
        default=24.0,
        description="System events older than this are evicted during hard maintenance",
        gt=0,
    )
    consolidation_window_ms: int = Field(
        default=60_000,
        description="Events of the same kind closer than this are consolidated",
        gt=0,
    )
    compression_age_hours: float = Field(
        default=2.0,
        description="Only events older than this are compressed",
        gt=0,
    )
    compression_length: int = Field(
        default=100,
        description="Content longer than this is truncated to this length",
        ge=1,
    )
    compression_marker: str = Field(
        default="...[compressed]",
        description="Suffix appended to compressed content",
    )
    consolidate_across_roles: bool = Field(
        default=True,
        description="Allow user and model events sharing an action to be consolidated together",
    )


class PromptsConfig(BaseModel):
    """Skill prompt catalog configuration."""

    directory: str = Field(
        default="~/.convmem/prompts",
        description="Directory holding one <skill>.md or <skill>.txt prompt per skill",
    )
    language_skills: list[str] = Field(
        default=["dsa"],
        description="Skills whose prompt is specialised for a programming language",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level for the convmem loggers",
    )


class ConvmemConfig(BaseModel):
    """Root configuration schema for convmem."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    maintenance: MaintenanceConfig = Field(default_factory=MaintenanceConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
