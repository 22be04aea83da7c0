"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from constants import DEFAULT_LEVELS, LevelTable, with_durations
from orchestrator.enums.level import QualityLevel


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) == "1"


def _duration_overrides(environ: Mapping[str, str]) -> dict[QualityLevel, int]:
    """
    Collect QUALITY_<LEVEL>_DURATION_MS overrides.

    Raises:
        ValueError if a value is not an integer.
    """
    overrides: dict[QualityLevel, int] = {}
    for level in QualityLevel:
        raw = environ.get(f"QUALITY_{level.value}_DURATION_MS")
        if raw is None or raw == "":
            continue
        try:
            overrides[level] = int(raw)
        except ValueError as e:
            raise ValueError(
                f"QUALITY_{level.value}_DURATION_MS must be an integer, got {raw!r}"
            ) from e
    return overrides


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the gateway, which hands the level table to
    each new session.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Adaptive quality
    # ------------------------------------------------------------------

    # Server-side default; a client STATE_UPDATE may override per session
    disable_adaptive_quality: bool = False
    levels: LevelTable = field(default_factory=lambda: DEFAULT_LEVELS)

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"
    port: int = 8000

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a duration override or PORT is malformed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            enable_json_logs=_env_flag("ENABLE_JSON_LOGS", "1"),

            disable_adaptive_quality=_env_flag("DISABLE_ADAPTIVE_QUALITY", "0"),
            levels=with_durations(DEFAULT_LEVELS, _duration_overrides(os.environ)),

            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8000")),
        )
