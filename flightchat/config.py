# flightchat/config.py
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging"] = "dev"
    TZ: str = "UTC"
    REQUEST_TIMEOUT_SECONDS: float = 60.0

    # OpenAI (primary provider)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEXT_MODEL: str = "gpt-4o-mini"

    # Gemini (fallback provider, OpenAI-compatible endpoint)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # Amadeus
    AMADEUS_CLIENT_ID: str = ""
    AMADEUS_CLIENT_SECRET: str = ""
    AMADEUS_ENV: str = "sandbox"  # or "production"
    AMADEUS_CURRENCY: str = "INR"
    AMADEUS_MAX_OFFERS: int = 5
    AMADEUS_RATE_LIMIT_ATTEMPTS: int = 3
    AMADEUS_RATE_LIMIT_DELAY_SECONDS: float = 2.0

    # Tavily web search (booking links)
    TAVILY_API_KEY: str = ""
    TAVILY_TIMEOUT_SECONDS: float = 5.0

    # Redis
    REDIS_URL: Optional[str] = "redis://localhost:6379/0"
    REDIS_RETRY_ATTEMPTS: int = 3
    REDIS_RETRY_DELAY_SECONDS: float = 0.5
    CHAT_TTL_SECONDS: int = 86400  # conversation history
    LOCATION_TTL_SECONDS: int = 86400  # city name -> IATA code
    FLIGHT_CACHE_TTL_SECONDS: int = 3600  # flight search results

    # Search defaults
    DEFAULT_ORIGIN: str = "DEL"
    DEFAULT_DESTINATION: str = "BOM"
    DEFAULT_TRAVEL_DAYS_AHEAD: int = 7
    SHORTLIST_SIZE: int = 3

    # read .env and ignore any extra keys so this doesn't break again
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
