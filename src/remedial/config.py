"""Engine configuration loaded from environment variables.

Every setting can be overridden with a ``REMEDIAL_`` prefixed variable or a
``.env`` file in the project root.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RemedialConfig(BaseSettings):
    """Remedial engine configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Portal API (request/response HTTP service)
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the school portal API",
    )
    api_timeout_seconds: float = Field(
        default=15.0,
        description="Per-request timeout for portal API calls",
    )
    api_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per request before a transient failure is reported",
    )
    api_token: str = Field(
        default="",
        description="Bearer token forwarded to the portal (empty = cookie-less anonymous)",
    )

    # Endpoint paths
    window_path: str = Field(
        default="/api/master_teacher/coordinator/remedial-schedule",
        description="Explicit remedial window record",
    )
    quarter_schedule_path: str = Field(
        default="/api/master_teacher/coordinator/calendar/remedial-schedule",
        description="Quarter-month table for a school year",
    )
    profile_path: str = Field(
        default="/api/master_teacher/coordinator/profile",
        description="Coordinator profile with stored activities",
    )
    weekly_subjects_path: str = Field(
        default="/api/principal/weekly-subject-schedule",
        description="Principal's Monday-Friday subject rota",
    )
    send_path: str = Field(
        default="/api/master_teacher/coordinator/calendar/send",
        description="Activity submission for principal approval",
    )

    # Planning defaults
    default_start_time: str = Field(
        default="09:00",
        pattern=_TIME_PATTERN,
        description="Session start when no weekly schedule has been saved",
    )
    default_end_time: str = Field(
        default="10:00",
        pattern=_TIME_PATTERN,
        description="Session end when no weekly schedule has been saved",
    )
    fallback_grade_level: str = Field(
        default="Grade 3",
        description="Grade label used when the coordinator has no grade assignment",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "REMEDIAL_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _default_slot_ordered(self) -> "RemedialConfig":
        # Zero-padded HH:MM strings compare in time order
        if self.default_end_time <= self.default_start_time:
            raise ValueError("default_end_time must be later than default_start_time")
        return self


# Singleton pattern
_config: RemedialConfig | None = None


def get_config() -> RemedialConfig:
    """Get the engine configuration singleton.

    Returns:
        RemedialConfig: Engine configuration instance
    """
    global _config
    if _config is None:
        _config = RemedialConfig()
    return _config


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() re-reads the env."""
    global _config
    _config = None
