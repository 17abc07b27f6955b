"""Application configuration and settings"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings and configuration"""

    # API Settings
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "RockBlast Prediction Portal"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Web front-end for the rock blasting prediction service"

    # Prediction backend
    PREDICTION_API_URL: str = "http://localhost:8000"
    API_TIMEOUT_SECONDS: float = 30.0

    # Sessions
    SESSION_COOKIE_NAME: str = "rockblast_session"
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30
    SIGN_IN_PATH: str = "/api/v1/auth/signin"

    # Client-side state
    STORAGE_DIR: str = "./storage"
    RECENTS_LIMIT: int = 10

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
