from functools import lru_cache

from pydantic_settings import BaseSettings

from taskboard.exceptions import ConfigurationError


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 9000
    log_level: str = "INFO"
    mongodb_uri: str = ""
    mongodb_database: str = ""
    mongodb_collection: str = "tasks"
    mongodb_timeout_ms: int = 5000
    allowed_hosts: list[str] = ["127.0.0.1", "::1", "localhost"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def require_mongo_settings(settings: Settings) -> None:
    """Raise ConfigurationError naming every missing MongoDB env var."""
    missing = [
        env_name
        for env_name, value in (
            ("MONGODB_URI", settings.mongodb_uri),
            ("MONGODB_DATABASE", settings.mongodb_database),
        )
        if not value
    ]
    if missing:
        plural = "s" if len(missing) > 1 else ""
        raise ConfigurationError(f"Missing MongoDB env var{plural}: {', '.join(missing)}")
