"""Application configuration and settings."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service Configuration
    service_name: str = "healthcheck-triage"
    service_port: int = 8000
    environment: str = "development"
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:8080"]

    # MongoDB Configuration
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "healthcheck"
    mongodb_collection_sessions: str = "symptom_sessions"
    mongodb_collection_appointments: str = "appointments"
    mongodb_collection_doctors: str = "doctors"

    # AI Gateway (OpenAI-compatible chat completions)
    ai_gateway_api_key: str = ""
    ai_gateway_endpoint: str = "https://ai.gateway.lovable.dev/v1"
    classifier_model: str = "google/gemini-2.5-flash"
    model_temperature: float = 0.2
    model_max_tokens: int = 1200
    # None leaves the transport default in charge
    llm_invoke_timeout: Optional[float] = None

    # Email (Resend)
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_sender: str = "HealthCheck <onboarding@resend.dev>"

    # JWT Configuration (tokens issued by the hosted auth provider)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = "authenticated"
    jwt_access_cookie_name: str = "access_token"

    # Booking
    booking_window_days: int = 7

    # Live wizards untouched this long are dropped from memory
    wizard_idle_ttl_seconds: float = 1800.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
