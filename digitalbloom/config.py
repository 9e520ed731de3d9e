from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for the service.

    Values are read from environment variables prefixed with BLOOM_*, e.g.:
      BLOOM_GEMINI_API_KEY, BLOOM_SITE_MODEL, BLOOM_IMAGE_MODEL, BLOOM_LOG_LEVEL
    """

    gemini_api_key: str = Field(default="", description="API key for the Gemini generateContent endpoint")
    api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generative language REST API",
    )

    # Models used per task
    suggestion_model: str = Field(default="gemini-2.5-flash", description="Model for content suggestions")
    site_model: str = Field(default="gemini-2.5-pro", description="Model for full site generation")
    image_model: str = Field(default="gemini-2.5-flash-image", description="Model for image generation")
    temperature: float = Field(default=0.7, description="Sampling temperature for text generation")

    request_timeout: float = Field(
        default=180.0,
        description="Transport timeout in seconds for a single upstream call",
    )
    fallback_image_url: str = Field(
        default="https://placehold.co/1600x900/1f2937/7f8ea3?text=Image+Generation+Failed",
        description="Image used in place of any image the model failed to produce",
    )

    log_level: str = Field(default="INFO", description="Root logging level")
    session_cookie: str = Field(default="bloom_session", description="Cookie carrying the wizard session id")
    session_ttl_seconds: float = Field(default=3600.0, description="Idle time after which a wizard session is dropped")
    max_sessions: int = Field(default=200, description="Upper bound on wizard sessions held in memory")

    class Config:
        env_prefix = "BLOOM_"
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
