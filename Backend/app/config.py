# app/config.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Absoluut pad naar de .env (staat in Backend/.env)
# Dit bestand staat in Backend/app/config.py → parent = Backend
ENV_FILE = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_FILE, override=False)  # pre-load in procesomgeving

DEFAULT_JWT_SECRET = "your-secret-key"


class Settings(BaseSettings):
    # ---- App / Infra ----
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "production"
    FRONTEND_URL: str = "http://localhost:4200"
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:4200",
            "http://127.0.0.1:4200",
            "capacitor://localhost",
            "http://localhost",
        ]
    )

    # ---- Auth ----
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_EXPIRES_DAYS: int = 7
    OAUTH_STATE_TTL_MINUTES: int = 10
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_CALLBACK_URL: str = "http://localhost:3000/api/auth/google/callback"

    # ---- Document store ----
    # Zonder MONGODB_URI draait de API volledig in-memory.
    MONGODB_URI: Optional[str] = None
    MONGODB_DB: str = "location_notebook"
    MONGODB_TIMEOUT_MS: int = 5000

    # ---- Cloudinary ----
    CLOUDINARY_URL: Optional[str] = None
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "location-tracker"

    # ---- Reverse geocoding ----
    GEOCODING_TIMEOUT_S: float = 5.0
    GEOCODING_LANGUAGE: str = "tr"
    GEOCODING_USER_AGENT: str = "LocationNotebook/1.0"
    GOOGLE_GEOCODING_API_KEY: Optional[str] = None

    # Pydantic v2 configuratie
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),          # absoluut pad
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",                  # negeer overige .env-keys
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "development"


settings = Settings()


def require_google_oauth(
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> tuple[str, str]:
    """
    Runtime-check die een duidelijke foutmelding geeft als de OAuth keys ontbreken.
    """
    client_id = settings.GOOGLE_CLIENT_ID if client_id is None else client_id
    client_secret = settings.GOOGLE_CLIENT_SECRET if client_secret is None else client_secret
    if not client_id or not client_secret:
        raise RuntimeError(
            "GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET ontbreken. Zet deze in Backend/.env "
            f"(geprobeerd te laden vanaf: {ENV_FILE})."
        )
    return client_id, client_secret


def using_default_jwt_secret() -> bool:
    return settings.JWT_SECRET == DEFAULT_JWT_SECRET
