"""Engine settings for doc-spine.

``EngineSettings`` collects every tunable of the engine in one validated,
environment-driven object. Values come from ``DOCSPINE_*`` environment
variables or a ``.env`` file; unknown keys are ignored.

Examples:
    >>> settings = EngineSettings(simple_max_proposals=2)
    >>> settings.simple_max_proposals
    2

Tags:
    settings, configuration, pydantic, environment, doc-spine
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings shared by the graph store, persistence and workflow engine.

    Fields
    ──────
    log_level            : Minimum level passed to configure_from_settings
    json_logs            : JSON renderer on/off, None to auto-detect from TTY
    service_name         : Value of the ``service.name`` log field
    simple_max_proposals : Card cap for sessions triaged as simple
    database_path        : SQLite database for graph snapshots
    content_dir          : Directory of the file-backed content store
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "doc-spine"

    # ── Workflow ─────────────────────────────────────────────────
    simple_max_proposals: int = Field(default=3, ge=1)

    # ── Storage ──────────────────────────────────────────────────
    database_path: str = ":memory:"
    content_dir: Path | None = None


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Return the process-wide settings instance."""
    return EngineSettings()
