from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    APP_NAME: str = "Autora Dealership API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./autora.db"

    # Clerk Backend API
    CLERK_API_URL: str = "https://api.clerk.com/v1"
    CLERK_SECRET_KEY: Optional[str] = None
    # Frontend origins allowed in the session token's azp claim; empty skips the check
    CLERK_AUTHORIZED_PARTIES: List[str] = []

    # Supabase Storage
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    STORAGE_BUCKET: str = "car-images"

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"

    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    # SMTP Settings
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_SENDER_NAME: str = "Autora"

    # Requests per window per client on the public image search
    IMAGE_SEARCH_RATE_LIMIT: int = 10
    IMAGE_SEARCH_RATE_WINDOW: int = 3600

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    class Config:
        # This tells Pydantic to load the variables from a .env file
        env_file = ".env"
        extra = "ignore"

# Create a single settings instance to be used across the application
settings = Settings()
