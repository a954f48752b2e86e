"""
Configuration management for ScanCompare.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scancompare.core.severity import SeverityLevel


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "ScanCompare"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    
    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000
    
    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_per_minute: int = 60
    
    # ==========================================================================
    # Comparison
    # ==========================================================================
    max_findings_per_scan: int = 200
    immediate_consult_severities: str = "high,critical"
    
    # ==========================================================================
    # Reports
    # ==========================================================================
    report_title: str = "Scan Comparison Report"
    
    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("immediate_consult_severities")
    @classmethod
    def _check_consult_severities(cls, value: str) -> str:
        """Reject labels outside the severity scale instead of defaulting them."""
        labels = [level.strip().lower() for level in value.split(",") if level.strip()]
        valid = {level.value for level in SeverityLevel}
        unknown = [label for label in labels if label not in valid]
        if unknown:
            raise ValueError(
                f"Unknown severity level(s): {', '.join(unknown)} "
                f"(expected any of {', '.join(level.value for level in SeverityLevel)})"
            )
        return ",".join(labels)

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def consult_severities(self) -> list[SeverityLevel]:
        """Overall severities that always trigger a consultation advice."""
        return [
            SeverityLevel(level)
            for level in self.immediate_consult_severities.split(",")
            if level
        ]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
