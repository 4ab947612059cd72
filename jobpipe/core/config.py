"""Configuration models and YAML loader for the job pipeline."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from jobpipe.core.schemas import SourceId

DEFAULT_SOURCE_PRIORITY = [SourceId.FINDWORK, SourceId.JOOBLE, SourceId.USAJOBS]


class SourceConfig(BaseModel):
    """Connection settings for a single job board."""

    enabled: bool = True
    base_url: str | None = None
    api_key_env: str | None = None
    user_agent_env: str | None = None
    results_per_page: int = Field(default=25, ge=1, le=500)


class AggregationConfig(BaseModel):
    """Fan-out behaviour."""

    per_source_timeout: float = Field(default=10.0, gt=0.0, le=120.0)
    source_priority: list[SourceId] = Field(
        default_factory=lambda: list(DEFAULT_SOURCE_PRIORITY)
    )
    default_sources: list[SourceId] = Field(
        default_factory=lambda: list(DEFAULT_SOURCE_PRIORITY)
    )

    @field_validator("source_priority")
    @classmethod
    def priority_complete(cls, v: list[SourceId]) -> list[SourceId]:
        if len(set(v)) != len(v):
            msg = "source_priority must not contain duplicates"
            raise ValueError(msg)
        # Sources left out of the configured order rank after the listed ones.
        return v + [s for s in DEFAULT_SOURCE_PRIORITY if s not in v]


class ClassificationConfig(BaseModel):
    """Limits for calls to the language-model backend."""

    timeout: float = Field(default=30.0, gt=0.0, le=300.0)
    max_concurrency: int = Field(default=4, ge=1, le=32)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=400, ge=32)


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobpipe.db"


def _default_sources() -> dict[SourceId, SourceConfig]:
    return {
        SourceId.FINDWORK: SourceConfig(api_key_env="FINDWORK_API_KEY"),
        SourceId.JOOBLE: SourceConfig(api_key_env="JOOBLE_API_KEY"),
        SourceId.USAJOBS: SourceConfig(
            api_key_env="USAJOBS_API_KEY",
            user_agent_env="USAJOBS_USER_AGENT",
        ),
    }


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    sources: dict[SourceId, SourceConfig] = Field(default_factory=_default_sources)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)

    @field_validator("sources", mode="before")
    @classmethod
    def merge_with_defaults(cls, v: Any) -> dict[str, Any]:
        """Overlay per-source YAML keys on the built-in defaults."""
        merged: dict[str, Any] = {
            sid.value: cfg.model_dump() for sid, cfg in _default_sources().items()
        }
        for key, override in (v or {}).items():
            sid = SourceId(key).value
            if isinstance(override, SourceConfig):
                override = override.model_dump(exclude_unset=True)
            merged[sid] = {**merged[sid], **(override or {})}
        return merged

    def source(self, source_id: SourceId) -> SourceConfig:
        return self.sources[source_id]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
