from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "Preview Engine"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    # Comma-separated origins allowed to call the API (the editor front end)
    BACKEND_CORS_ORIGINS: str = ""

    # Script engine: wall-clock budget in seconds (SIGALRM, or tracing off the main thread).
    # 0 or unset disables the budget.
    SCRIPT_EXEC_TIMEOUT: int | None = Field(default=5, ge=0)
    # Comma-separated top-level modules exposed in script globals (e.g. "math,statistics").
    SCRIPT_EXTRA_MODULES: str = ""

    # Template engine
    TEMPLATE_RENDER_TIMEOUT: int | None = Field(default=5, ge=0)
    TEMPLATE_CACHE_MAX_SIZE: int = Field(default=512, ge=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [o.strip().rstrip("/") for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def script_extra_modules(self) -> list[str]:
        raw = (self.SCRIPT_EXTRA_MODULES or "").strip()
        return [s.strip() for s in raw.split(",") if s.strip()]


settings = Settings()  # type: ignore
