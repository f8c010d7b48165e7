"""Application settings with environment validation."""

import os
from typing import List


class Settings:
    """Application settings with environment validation."""

    def __init__(self) -> None:
        # Database
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./sensor_relay.db")

        # Storage backend for users/devices/functions/notifications ("sql" or "firestore")
        self.store_backend = os.getenv("STORE_BACKEND", "sql").lower()

        # Authentication
        self.firebase_cert_path = os.getenv("FIREBASE_CERT_PATH", "firebase_key.json")
        self.require_event_auth = self._parse_bool(
            os.getenv("REQUIRE_EVENT_AUTH", "false")
        )

        self.environment = os.getenv("ENV", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Security
        self.cors_origins = self._parse_cors_origins(os.getenv("CORS_ORIGINS", "*"))

        # Diagnostics
        self.sql_debug = self._parse_bool(os.getenv("SQL_DEBUG", "false"))

        # History page size shown in the app
        self.history_page_size = int(os.getenv("HISTORY_PAGE_SIZE", "50"))

        # On-device client
        self.relay_api_url = os.getenv("RELAY_API_URL", "http://localhost:8000")
        self.heartbeat_interval = float(os.getenv("HEARTBEAT_INTERVAL", "60"))
        self.client_timeout = float(os.getenv("CLIENT_TIMEOUT", "10"))

    def _parse_cors_origins(self, v: str) -> List[str]:
        if v == "*":
            return ["*"]
        return [origin.strip() for origin in v.split(",")]

    def _parse_bool(self, v: str) -> bool:
        return v.lower() in ("true", "1", "yes", "on")

    @property
    def is_production(self) -> bool:  # convenience flag
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:  # convenience flag
        return self.environment.lower() == "development"

    @property
    def is_test(self) -> bool:
        return self.environment.lower() == "test"


settings = Settings()
