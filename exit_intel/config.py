"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``EXIT_INTEL_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI and the dossier updater receive an ``AppConfig`` (or one of its
sections), never raw dicts or env var lookups scattered through the code.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from exit_intel.recommendations.ranker import RecommendationTuning

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/exit_intel.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/exit_intel.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class DossierConfig(BaseModel):
    """Dossier store and updater settings.

    ``sections_dir`` is only read by the file-backed section builder used by
    the CLI; service deployments inject their own builder.
    """

    model_config = ConfigDict(frozen=True)

    sections_dir: str = "data/sections"
    max_conflict_retries: int = 3
    background_workers: int = 2

    @field_validator("max_conflict_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_conflict_retries must be >= 0, got {v}.")
        return v

    @field_validator("background_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"background_workers must be >= 1, got {v}.")
        return v


class RecommendationConfig(BaseModel):
    """Playbook recommendation engine constants.

    Defaults reproduce the production engine exactly; override only for
    experiments.
    """

    model_config = ConfigDict(frozen=True)

    rss_max_rate: float = 0.25
    bqs_max_impact: float = 0.35
    active_deprioritization: float = 0.5
    top_n: int = 3
    ebitda_baseline: float = 1_000_000.0

    @field_validator("rss_max_rate", "bqs_max_impact", "ebitda_baseline")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Normalization ceilings must be > 0, got {v}.")
        return v

    @field_validator("active_deprioritization")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"active_deprioritization must be in (0.0, 1.0], got {v}.")
        return v

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"top_n must be >= 0, got {v}.")
        return v

    def to_tuning(self) -> "RecommendationTuning":
        """Return the engine-level ``RecommendationTuning`` for these settings."""
        from exit_intel.recommendations.ranker import RecommendationTuning

        return RecommendationTuning(
            rss_max_rate=self.rss_max_rate,
            bqs_max_impact=self.bqs_max_impact,
            active_deprioritization=self.active_deprioritization,
            top_n=self.top_n,
            ebitda_baseline=self.ebitda_baseline,
        )


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    dossier: DossierConfig = DossierConfig()
    recommendations: RecommendationConfig = RecommendationConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply EXIT_INTEL_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply EXIT_INTEL_* env vars to the raw config dict.

    Supported overrides:
      EXIT_INTEL_DB_PATH       → raw["database"]["db_path"]
      EXIT_INTEL_LOG_LEVEL     → raw["logging"]["level"]
      EXIT_INTEL_SECTIONS_DIR  → raw["dossier"]["sections_dir"]
      EXIT_INTEL_DEBUG         → raw["debug"]
    """
    if db_path := os.environ.get("EXIT_INTEL_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("EXIT_INTEL_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if sections_dir := os.environ.get("EXIT_INTEL_SECTIONS_DIR"):
        raw.setdefault("dossier", {})["sections_dir"] = sections_dir

    if debug := os.environ.get("EXIT_INTEL_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        dossier=DossierConfig(**raw.get("dossier", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
