"""Environment-driven settings for the client, the serverless functions and the providers."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TRAINING_API_URL = "http://localhost:8000"
DEFAULT_TRAINER = "ostris/flux-dev-lora-trainer"
DEFAULT_TRAINER_VERSION = "e440909d3512c31646ee2e0c7d6f6f4923224863a6a10c494606e79fb5844497"

POLL_INTERVAL_S = 5.0
MAX_POLLS = 360  # 30 minutes at the default interval


def resolve_api_key(explicit: str | None, *env_names: str) -> str:
    """Return the explicit key if given, else the first non-empty environment variable."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in env_names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    openai_api_key: str = ""
    replicate_api_token: str = ""
    training_api_url: str = DEFAULT_TRAINING_API_URL
    replicate_trainer: str = DEFAULT_TRAINER
    replicate_trainer_version: str = DEFAULT_TRAINER_VERSION
    replicate_destination: str = ""
    poll_interval_s: float = POLL_INTERVAL_S
    max_polls: int = MAX_POLLS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment.

        Call ``dotenv.load_dotenv()`` first at the entry point if a ``.env``
        file should be honoured.
        """
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", "").strip(),
            supabase_anon_key=resolve_api_key(None, "SUPABASE_ANON_KEY", "SUPABASE_KEY"),
            supabase_service_role_key=resolve_api_key(None, "SUPABASE_SERVICE_ROLE_KEY"),
            openai_api_key=resolve_api_key(None, "OPENAI_API_KEY"),
            replicate_api_token=resolve_api_key(None, "REPLICATE_API_TOKEN"),
            training_api_url=(
                os.environ.get("TRAINING_API_URL", "").strip() or DEFAULT_TRAINING_API_URL
            ).rstrip("/"),
            replicate_trainer=os.environ.get("REPLICATE_TRAINER", "").strip() or DEFAULT_TRAINER,
            replicate_trainer_version=(
                os.environ.get("REPLICATE_TRAINER_VERSION", "").strip() or DEFAULT_TRAINER_VERSION
            ),
            replicate_destination=os.environ.get("REPLICATE_DESTINATION", "").strip(),
            poll_interval_s=_float_env("POLL_INTERVAL_S", POLL_INTERVAL_S),
            max_polls=int(_float_env("MAX_POLLS", MAX_POLLS)),
            log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    def require(self, *fields: str) -> None:
        """Raise ValueError naming the first missing setting."""
        for name in fields:
            if not getattr(self, name):
                raise ValueError(f"{name.upper()} is not set")

    def require_supabase_admin(self) -> None:
        if not self.supabase_url or not self.supabase_service_role_key:
            raise ValueError("Missing Supabase environment variables")
