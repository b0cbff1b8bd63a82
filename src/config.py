"""Configuration settings for the AMR surveillance service."""

import os
from dataclasses import dataclass

STORAGE_BACKENDS = ("memory", "postgres")


def get_postgres_uri():
    """Get database connection URI from environment variables."""
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url
    host = os.environ.get("DB_HOST", "localhost")
    port = 5433 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "amr_pass")
    user = os.environ.get("DB_USER", "amr_user")
    db_name = os.environ.get("DB_NAME", "amr_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", "6379"))
    return dict(host=host, port=port)


def get_storage_backend():
    """Get the observation store implementation to use ("memory" or "postgres")."""
    backend = os.environ.get("STORAGE_BACKEND", "memory").lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unsupported STORAGE_BACKEND '{backend}', expected one of {STORAGE_BACKENDS}"
        )
    return backend


def get_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class AppConfig:
    """Startup configuration handed to the API factory."""
    storage_backend: str = "memory"
    postgres_uri: str = ""
    seed_demo_data: bool = True
    log_level: str = "INFO"


def get_app_config() -> AppConfig:
    """Build the application configuration from environment variables."""
    return AppConfig(
        storage_backend=get_storage_backend(),
        postgres_uri=get_postgres_uri(),
        seed_demo_data=os.environ.get("SEED_DEMO_DATA", "true").lower() == "true",
        log_level=get_log_level(),
    )
