"""
Configuration management for the geofenced attendance backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="PostgreSQL database URL")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Business time zone. Every hour-of-day check and every work date is computed here;
    # instants are stored in UTC. The process TZ variable is ignored.
    BUSINESS_TZ: str = Field(default="Asia/Kolkata", description="Business time zone for office hours and work dates")

    # Attendance rules
    OFFICE_HOURS_START: int = Field(default=9, ge=0, le=23, description="First office hour (inclusive)")
    OFFICE_HOURS_END: int = Field(default=20, ge=1, le=24, description="Office hours end (exclusive)")
    HALF_DAY_THRESHOLD_MINUTES: int = Field(
        default=300,
        ge=0,
        description="Working minutes at or below this value make the day a half-day",
    )
    DEFAULT_BRANCH_RADIUS_METERS: float = Field(default=50, gt=0, description="Geofence radius for new branches")

    # Nightly jobs (business time zone)
    AUTO_CHECKOUT_HOUR: int = Field(default=21, ge=0, le=23, description="Auto-checkout cutoff hour")
    AUTO_CHECKOUT_MINUTE: int = Field(default=0, ge=0, le=59, description="Auto-checkout cutoff minute")
    ABSENTEE_JOB_HOUR: int = Field(default=23, ge=0, le=23, description="Absentee marking hour")
    ABSENTEE_JOB_MINUTE: int = Field(default=30, ge=0, le=59, description="Absentee marking minute")
    RUN_SCHEDULER: bool = Field(
        default=False,
        description="Start the in-process daily scheduler on startup. Disable when an external scheduler calls /jobs.",
    )
    BATCH_PAGE_SIZE: int = Field(default=200, gt=0, description="Rows loaded per page by batch jobs")
    JOB_STALE_AFTER_MINUTES: int = Field(
        default=120,
        gt=0,
        description="A job run still marked running after this long is treated as interrupted and may be re-run",
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("BUSINESS_TZ")
    @classmethod
    def validate_tz(cls, v: str) -> str:
        """BUSINESS_TZ must be a valid IANA zone name"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"BUSINESS_TZ must be a valid IANA time zone, got {v!r}")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def business_tz(self) -> ZoneInfo:
        return ZoneInfo(self.BUSINESS_TZ)


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
