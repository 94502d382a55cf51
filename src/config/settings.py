from pydantic_settings import BaseSettings
import os

class Settings(BaseSettings):
    # API Server Configuration
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))  # Render.io provides PORT env var
    api_reload: bool = False  # Disable reload in production
    cors_origins: list[str] = ["*"]

    # Gemini Configuration
    # Not validated at startup; a bad key surfaces as an auth error on the first call
    gemini_api_key: str = "YOUR_GEMINI_API_KEY_HERE"
    gemini_api_url: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-1.5-flash-latest:generateContent"
    )
    gemini_timeout: float | None = None  # Seconds; None waits indefinitely

    # Upload Configuration
    max_upload_bytes: int = 50 * 1024 * 1024

    # Session Configuration
    session_ttl_seconds: float | None = 3600  # Idle sessions are evicted; None keeps them until DELETE

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
