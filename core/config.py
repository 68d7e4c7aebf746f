"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="AI OFX Converter", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Gemini
    gemini_api_key: str = Field(default="", alias="API_KEY")
    gemini_gateway_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_GATEWAY_URL"
    )
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_timeout: int = Field(default=120, alias="GEMINI_TIMEOUT")
    gemini_thinking_budget: int = Field(default=4096, alias="GEMINI_THINKING_BUDGET")

    # Extraction
    max_chunk_size: int = Field(default=150000, alias="MAX_CHUNK_SIZE")
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    initial_backoff_seconds: float = Field(default=2.0, alias="INITIAL_BACKOFF_SECONDS")
    backoff_jitter_seconds: float = Field(default=1.0, alias="BACKOFF_JITTER_SECONDS")
    max_output_tokens: int = Field(default=8192, alias="MAX_OUTPUT_TOKENS")
    temperature: float = Field(default=0.0, alias="TEMPERATURE")
    split_notice_pause_seconds: float = Field(default=1.5, alias="SPLIT_NOTICE_PAUSE_SECONDS")
    part_done_pause_seconds: float = Field(default=0.5, alias="PART_DONE_PAUSE_SECONDS")

    # OFX placeholders
    bank_id: str = Field(default="001", alias="OFX_BANK_ID")
    account_id: str = Field(default="999999-9", alias="OFX_ACCOUNT_ID")
    account_type: str = Field(default="CHECKING", alias="OFX_ACCOUNT_TYPE")
    currency: str = Field(default="BRL", alias="OFX_CURRENCY")
    language: str = Field(default="POR", alias="OFX_LANGUAGE")

    # Uploads
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # Sessions
    max_sessions: int = Field(default=100, alias="MAX_SESSIONS")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @validator("port")
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @validator("max_chunk_size")
    def validate_chunk_size(cls, v):
        """Validate chunk size."""
        if v < 1000:
            raise ValueError("Max chunk size must be at least 1000 characters")
        return v

    @validator("max_retries")
    def validate_retries(cls, v):
        """Validate retry budget."""
        if v < 1:
            raise ValueError("Max retries must be at least 1")
        if v > 10:
            raise ValueError("Max retries should not exceed 10")
        return v

    @validator("max_sessions")
    def validate_max_sessions(cls, v):
        if v < 1:
            raise ValueError("Max sessions must be at least 1")
        return v

    @validator("temperature")
    def validate_temperature(cls, v):
        if not (0.0 <= v <= 2.0):
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @validator("currency")
    def validate_currency(cls, v):
        """Currency must be a 3-letter ISO code."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter ISO 4217 code")
        return v.upper()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
