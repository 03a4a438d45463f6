"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for detection thresholds and regulatory deadlines

Collaborators:
  - application/failed_login_tracker.py: threshold, window, cleanup interval
  - application/incident_detection.py: correlation window, CNIL deadline,
    mass export and backup failure thresholds
  - application/usecases/bootstrap: bootstrap secret, email hash key
  - crosscutting/logger.py: log level and format

Constraints:
  - No business logic — pure configuration
  - Thresholds are configuration values, never hardcoded in the core

Notes:
  - Singleton via lru_cache
  - Production refuses default secrets (bootstrap secret, email hash key)
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SEVERITY_LABELS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_env: Application environment (development/test/production)
        log_level: Root log level (default: INFO)
        log_json: Emit JSON logs (default: True)
        database_url: PostgreSQL connection string (optional, in-memory if empty)
        db_retry_max_attempts: Attempts for transient DB failures (default: 3)
        bootstrap_secret: One-time secret required by the platform bootstrap
        email_hash_key: Key for the keyed email hash (HMAC-SHA256)
        failed_login_threshold: Failures tolerated before detection (default: 5)
        failed_login_ip_threshold: Failures tolerated per source IP across all
            identities (default: 10)
        failed_login_window_minutes: Sliding window size (default: 5)
        failed_login_cleanup_interval_seconds: Periodic pruning interval (default: 300)
        incident_correlation_window_minutes: Window for escalating instead of
            creating a new incident (default: 60)
        cnil_deadline_hours: Authority notification deadline (default: 72)
        cnil_deadline_warning_hours: "Approaching" threshold (default: 24)
        incident_notification_min_severity: Minimum severity for which a CNIL
            deadline is computed (default: LOW)
        audit_write_timeout_seconds: Timeout applied to compliance-critical
            audit writes (default: 5.0)
        mass_export_record_threshold: Records exported by one actor (as counted
            by the caller) that open a DATA_LEAK incident (default: 10000)
        backup_failure_threshold: Consecutive backup failures that open a
            DATA_LOSS incident (default: 2)
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Database (optional: in-memory adapters when empty)
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_statement_timeout_ms: int = 10000
    db_retry_max_attempts: int = 3
    db_retry_base_delay_seconds: float = 0.2
    db_retry_max_delay_seconds: float = 2.0

    # Bootstrap
    bootstrap_secret: str = "change-me"
    email_hash_key: str = "dev-email-hash-key"

    # Brute force detection
    failed_login_threshold: int = 5
    failed_login_ip_threshold: int = 10
    failed_login_window_minutes: int = 5
    failed_login_cleanup_interval_seconds: int = 300

    # Incidents
    incident_correlation_window_minutes: int = 60
    cnil_deadline_hours: int = 72
    cnil_deadline_warning_hours: int = 24
    incident_notification_min_severity: str = "LOW"

    # Other detection signals
    mass_export_record_threshold: int = 10000
    backup_failure_threshold: int = 2

    # Audit
    audit_write_timeout_seconds: float = 5.0

    @field_validator(
        "failed_login_threshold",
        "failed_login_ip_threshold",
        "failed_login_window_minutes",
        "failed_login_cleanup_interval_seconds",
        "incident_correlation_window_minutes",
        "cnil_deadline_hours",
        "db_retry_max_attempts",
        "mass_export_record_threshold",
        "backup_failure_threshold",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("audit_write_timeout_seconds")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("audit_write_timeout_seconds must be greater than 0")
        return v

    @field_validator("incident_notification_min_severity")
    @classmethod
    def severity_label_valid(cls, v: str) -> str:
        label = (v or "LOW").strip().upper()
        if label not in _SEVERITY_LABELS:
            raise ValueError(
                "incident_notification_min_severity must be LOW, MEDIUM, HIGH or CRITICAL"
            )
        return label

    @model_validator(mode="after")
    def validate_security_requirements(self):
        if not self.is_production():
            return self

        insecure_secrets = {"change-me", "changeme", "dev-secret", "password"}
        secret = (self.bootstrap_secret or "").strip()
        if not secret or secret in insecure_secrets:
            raise ValueError(
                "BOOTSTRAP_SECRET must be set to a strong, non-default value in production"
            )
        if len(secret) < 32:
            raise ValueError(
                "BOOTSTRAP_SECRET must be at least 32 characters in production"
            )

        key = (self.email_hash_key or "").strip()
        if not key or key == "dev-email-hash-key":
            raise ValueError("EMAIL_HASH_KEY must be set in production")

        return self

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Note:
      - Tests can call get_settings.cache_clear() after patching the env.
    """
    return Settings()
