"""Application configuration with validation."""

from enum import Enum
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class StorageModePolicy(str, Enum):
    """How the storage mode of a user is decided.

    Chosen once per deployment. ``per_user`` reads ``users.is_premium``;
    the other two force every user into one mode.
    """
    PER_USER = "per_user"
    MIRRORED = "mirrored"
    PHYSICAL_ONLY = "physical_only"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Uses Pydantic for configuration validation, preventing
    common security issues like wildcard CORS.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8081",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./studyshelf.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Authentication
    # AUTH_ENABLED: when False, the user id is taken from the X-User-Id header (dev mode).
    jwt_secret_key: str = Field(
        default="dev-insecure-key-change-me",
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    auth_enabled: bool = Field(
        default=False,
        description="Enable JWT authentication (False for development)"
    )

    # Storage layout
    storage_root: str = Field(
        default="./storage/users",
        description="Directory holding one sandbox root per user"
    )
    uploads_dir: str = Field(
        default="./storage/uploads",
        description="Directory holding the canonical backing copy of every upload"
    )
    storage_mode_policy: StorageModePolicy = Field(
        default=StorageModePolicy.PER_USER,
        description="per_user (users.is_premium), mirrored, or physical_only"
    )
    default_folder_color: str = Field(
        default="#1565C0",
        description="Color used when a folder color is missing or malformed"
    )
    unique_name_max_attempts: int = Field(
        default=1000,
        description="Upper bound on 'name (N)' candidates tried before giving up"
    )
    tree_max_depth: int = Field(
        default=32,
        description="Deepest directory level the tree listing descends into"
    )
    max_upload_mb: int = Field(
        default=25,
        description="Maximum accepted upload size in megabytes"
    )
    document_model_tag: str = Field(
        default="llama3",
        description="Processing model tag stored on new documents"
    )

    # Per-user concurrency
    # MAX_INFLIGHT_PER_USER: concurrent storage requests one user may have open. 0 = unbounded.
    max_inflight_per_user: int = Field(
        default=8,
        description="Maximum concurrent storage requests per user"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @property
    def storage_root_path(self) -> Path:
        return Path(self.storage_root).expanduser().resolve()

    @property
    def uploads_path(self) -> Path:
        return Path(self.uploads_dir).expanduser().resolve()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('default_folder_color')
    @classmethod
    def validate_default_folder_color(cls, v: str) -> str:
        """The fallback color must itself be a valid #RRGGBB value."""
        v_upper = v.strip().upper()
        if len(v_upper) != 7 or not v_upper.startswith("#") or any(
            c not in "0123456789ABCDEF" for c in v_upper[1:]
        ):
            raise ValueError("DEFAULT_FOLDER_COLOR must look like #RRGGBB")
        return v_upper

    @field_validator('unique_name_max_attempts', 'tree_max_depth')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, logs warnings but allows startup.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == "dev-insecure-key-change-me":
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if not self.auth_enabled:
            errors.append(
                "AUTH_ENABLED is false. "
                "Authentication must be enabled in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors:
            if self.environment == Environment.PRODUCTION:
                raise ConfigurationError(
                    "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
                )
            # In development, just return; main.py logs the warnings
            return

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Allow reading from environment variables with different case
        case_sensitive = False


# Global settings instance
settings = Settings()
