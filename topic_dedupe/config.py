"""Registry settings using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class DedupeSettings(BaseSettings):
    """Dedupe registry configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TOPIC_DEDUPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Emit a warning whenever a topic is released more times than it was acquired.
    warn_on_excess_release: bool = True

    # DEBUG log level plus caller info on every log line (walks the stack, so keep off in prod).
    debug: bool = False

    # Info-level events for every open/close/reopen issued to the collaborator.
    log_operations: bool = True


@lru_cache
def get_settings() -> DedupeSettings:
    """Return the process-wide settings, loaded once."""
    return DedupeSettings()


settings = get_settings()
