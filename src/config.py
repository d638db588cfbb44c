"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Logbook"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Hevy (upstream source of truth) ---
    hevy_api_key: str = ""  # missing key fails the backfill before any I/O
    hevy_api_base: str = "https://api.hevyapp.com/v1"

    # --- AWS / DynamoDB ---
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "us-east-2"
    workouts_table: str = "Workouts"
    exercises_table: str = "Exercises"
    store_backend: str = "dynamodb"  # dynamodb | memory

    # --- Admin ---
    site_key: str = ""  # shared secret for the cache admin endpoints

    # --- Sync tuning ---
    sync_config_path: str | None = None  # override for the bundled sync_config.yaml

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
