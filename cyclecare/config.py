"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "CycleCare"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Supabase ---
    supabase_db_url: str  # direct postgres connection string for asyncpg
    db_pool_min_size: int = 2
    db_pool_max_size: int = 20
    db_command_timeout: float = 30.0

    # --- Auth gateway ---
    # The upstream gateway authenticates the caller and forwards the user UUID
    user_id_header: str = "X-User-Id"

    # --- Cycle engine ---
    cycle_config_path: str | None = None  # overrides the bundled cycle_config.yaml

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
