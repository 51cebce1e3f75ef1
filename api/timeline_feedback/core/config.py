import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

SUPPORTED_REACTION_KINDS = ("fire", "sleepy", "good", "bad", "confused")


class Settings(BaseSettings):
    # General settings
    DEBUG: bool = False
    PROJECT_NAME: str = "Timeline Feedback"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Feedback grouping
    FEEDBACK_WINDOW_SECONDS: float = 5.0  # Symmetric radius in timeline seconds

    # Playback bar highlights
    SEGMENT_BUCKET_SECONDS: float = 5.0  # Bucket width for segment highlights
    SEGMENT_HIGHLIGHT_LIMIT: int = 10  # Max highlighted segments per target

    # Reaction kinds enabled for toggling (comma-separated or list)
    REACTION_KINDS: str | list[str] = list(SUPPORTED_REACTION_KINDS)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("FEEDBACK_WINDOW_SECONDS", "SEGMENT_BUCKET_SECONDS")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Window and bucket widths must be strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("SEGMENT_HIGHLIGHT_LIMIT")
    @classmethod
    def validate_highlight_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("REACTION_KINDS", mode="before")
    @classmethod
    def parse_reaction_kinds(cls, v: str | list[str]) -> list[str]:
        """Normalize REACTION_KINDS to a list of known kinds.

        Accepts a comma-separated string (as read from the environment)
        or a list. Order follows the supported kind order, not the input.
        """
        if isinstance(v, str):
            requested = [item.strip().lower() for item in v.split(",")]
        else:
            requested = [str(item).strip().lower() for item in v]
        requested = [item for item in requested if item]

        unknown = sorted(set(requested) - set(SUPPORTED_REACTION_KINDS))
        if unknown:
            raise ValueError(
                f"Unsupported reaction kinds: {', '.join(unknown)}. "
                f"Supported kinds: {', '.join(SUPPORTED_REACTION_KINDS)}"
            )
        if not requested:
            return list(SUPPORTED_REACTION_KINDS)
        return [kind for kind in SUPPORTED_REACTION_KINDS if kind in requested]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings instance with lazy initialization.

    Settings are only created once on first access, then cached for subsequent calls.
    This prevents module-level side effects and allows testing without environment variables.

    Returns:
        Settings: Application settings object
    """
    return Settings()
