"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults that match the workflow engine's behavior

Collaborators:
  - container.py: reads settings to build repositories and the engine
  - infrastructure/db/pool.py: pool sizes and statement timeout
  - crosscutting/logger.py: log level and format

Constraints:
  - No business logic: pure configuration

Notes:
  - Singleton via lru_cache
  - area_local_roles is matched against normalized role names
"""

from functools import lru_cache
from uuid import UUID

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string (empty => in-memory store)
        app_env: Application environment (development/test/production)
        log_level: Root log level for the "caseflow" logger
        log_json: Emit JSON logs (default: True)
        area_local_roles: Comma-separated role names allowed to act through
            MISMA_AREA rules (intake desk / area responsible archetypes)
        rule_wildcard_area_id: Area whose contextual rules apply to every area
        trash_note_template: Note appended to observations on move to trash
        max_observation_chars: Maximum observation length
        max_batch_check_ids: Maximum ids accepted by a batch permission check
    """

    database_url: str = ""

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000
    db_slow_query_seconds: float = 0.25
    db_healthcheck_on_acquire: bool = True

    # Authorization
    area_local_roles: str = "mesa de partes,responsable de area"
    rule_wildcard_area_id: UUID | None = None

    # Lifecycle
    trash_note_template: str = (
        "[Movido a papelera por usuario {user_id} el {timestamp}]"
    )
    max_observation_chars: int = 2_000
    max_batch_check_ids: int = 200

    @field_validator("db_pool_min_size", "db_pool_max_size")
    @classmethod
    def pool_size_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("pool sizes must be greater than 0")
        return v

    @field_validator("area_local_roles")
    @classmethod
    def area_local_roles_not_empty(cls, v: str) -> str:
        if not [name for name in v.split(",") if name.strip()]:
            raise ValueError("area_local_roles must name at least one role")
        return v

    @field_validator("trash_note_template")
    @classmethod
    def trash_note_template_placeholders(cls, v: str) -> str:
        # Solo {user_id} y {timestamp} están disponibles al renderizar.
        try:
            v.format(user_id="u", timestamp="t")
        except (KeyError, IndexError, AttributeError, ValueError) as exc:
            raise ValueError(
                "trash_note_template only accepts {user_id} and {timestamp} "
                f"placeholders ({exc!r})"
            ) from exc
        return v

    @model_validator(mode="after")
    def validate_pool_bounds(self):
        if self.db_pool_min_size > self.db_pool_max_size:
            raise ValueError(
                f"db_pool_min_size ({self.db_pool_min_size}) must not exceed "
                f"db_pool_max_size ({self.db_pool_max_size})"
            )
        return self

    @model_validator(mode="after")
    def validate_production_requirements(self):
        if self.is_production() and not self.database_url:
            raise ValueError("DATABASE_URL is required in production")
        return self

    def get_area_local_roles(self) -> list[str]:
        """Parse comma-separated role names into a list."""
        return [name.strip() for name in self.area_local_roles.split(",") if name.strip()]

    def is_production(self) -> bool:
        return self.app_env.strip().lower() in {"production", "prod"}

    def uses_in_memory_store(self) -> bool:
        env = self.app_env.strip().lower()
        return not self.database_url or env in {"test", "testing", "ci"}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Raises:
        ValidationError: If settings are inconsistent
    """
    return Settings()
