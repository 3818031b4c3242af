"""Central configuration loader for MF-Analyst."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

from src.utils.logger import setup_logger

# Project root is the parent of the src/ directory
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def load_settings() -> dict:
    """Load settings from configs/settings.yaml."""
    settings_path = PROJECT_ROOT / "configs" / "settings.yaml"
    if not settings_path.exists():
        return {}
    with open(settings_path) as f:
        return yaml.safe_load(f) or {}


SETTINGS = load_settings()


def section(name: str) -> dict:
    """Return one top-level settings block, or an empty dict."""
    return SETTINGS.get(name, {}) or {}


# --- Environment overrides ---
class Env:
    LOG_LEVEL = os.getenv("MF_ANALYST_LOG_LEVEL", "") or section("app").get("log_level", "INFO")
    SIMULATION_SEED = os.getenv("MF_ANALYST_SIMULATION_SEED", "")


logger = setup_logger("config", Env.LOG_LEVEL)


def default_simulation_seed() -> int | None:
    """Seed from the environment, or None for fresh entropy."""
    raw = Env.SIMULATION_SEED.strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "Ignoring non-integer MF_ANALYST_SIMULATION_SEED %r; simulations will not be reproducible",
            raw,
        )
        return None

