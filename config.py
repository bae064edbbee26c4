import logging
import os
from datetime import timedelta
from typing import List, Optional

from pydantic import BaseModel

STATIC_ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]

REGISTER_SESSION_TTL = timedelta(hours=24)
LOGIN_SESSION_TTL = timedelta(days=7)
RESET_TOKEN_TTL = timedelta(hours=1)


class Settings(BaseModel):
    """Process configuration, read once at startup and passed to factories."""

    port: int = 8000
    environment: str = "development"
    frontend_url: str = "http://localhost:5173"
    jwt_secret: str = ""
    firebase_project_id: Optional[str] = None
    firebase_service_account_key: Optional[str] = None
    firebase_api_key: Optional[str] = None
    brevo_api_key: Optional[str] = None
    email_sender: str = "noreply@realtime.app"
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "realtime"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            port=int(os.getenv("PORT", "8000")),
            environment=os.getenv("ENVIRONMENT", "development"),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173"),
            jwt_secret=os.getenv("JWT_SECRET", ""),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            firebase_service_account_key=os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY"),
            firebase_api_key=os.getenv("FIREBASE_API_KEY"),
            brevo_api_key=os.getenv("BREVO_API_KEY"),
            email_sender=os.getenv("EMAIL_SENDER", "noreply@realtime.app"),
            database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "realtime"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(STATIC_ALLOWED_ORIGINS)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    @property
    def identity_configured(self) -> bool:
        return bool(self.firebase_project_id and self.firebase_service_account_key)

    @property
    def email_configured(self) -> bool:
        return bool(self.brevo_api_key)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
