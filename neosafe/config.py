"""Application configuration."""
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.
    
    Environment variables take precedence over .env file.
    This makes it compatible with Docker (uses env vars) and 
    local development (uses .env file).
    """
    
    APP_NAME: str = "NeoSafe API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./neosafe.db"
    # Time-series store for sensor readings; falls back to DATABASE_URL
    TELEMETRY_DATABASE_URL: Optional[str] = None
    
    # JWT Settings
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480
    BCRYPT_ROUNDS: int = 12
    
    # Camera stream pointer, {box_id} is substituted
    CAMERA_STREAM_URL: str = "rtsp://camera.local/boxes/{box_id}/stream"
    
    CORS_ORIGINS: List[str] = ["*"]
    
    model_config = SettingsConfigDict(
        # Only load .env file if it exists (for local dev)
        # Docker will use environment variables directly
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def telemetry_url(self) -> str:
        return self.TELEMETRY_DATABASE_URL or self.DATABASE_URL


settings = Settings()
