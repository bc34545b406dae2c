"""Runtime settings, read from the environment.

arbor.main loads ``backend/.env`` with python-dotenv before it calls
Settings.from_env(), so values can live in either place.
"""

import os

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Engage in natural conversation and provide"
    " useful responses."
)


class Settings(BaseModel):
    db_path: str = "arbor.db"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_provider: str = "openrouter"
    default_model: str = "openai/gpt-4o"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ARBOR_* variables; unset variables keep defaults."""
        values: dict[str, object] = {}
        env_fields = {
            "ARBOR_DB_PATH": "db_path",
            "ARBOR_DEFAULT_SYSTEM_PROMPT": "default_system_prompt",
            "ARBOR_DEFAULT_PROVIDER": "default_provider",
            "ARBOR_DEFAULT_MODEL": "default_model",
            "ARBOR_LOG_LEVEL": "log_level",
        }
        for env_name, field_name in env_fields.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field_name] = raw

        origins = os.environ.get("ARBOR_CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        return cls.model_validate(values)
