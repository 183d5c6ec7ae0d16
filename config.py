import os
import logging

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Always load .env from the project root
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    DATABASE_URL: str | None = None
    DATABASE_NAME: str | None = None

    # Item catalog cache used by the requisition form
    CACHE_TTL_SECONDS: float = 300

    # Built-in administrator, checked before the users collection.
    # Credentials are compared in plain text.
    SUPERUSER_USERNAME: str = "IT"
    SUPERUSER_PASSWORD: str = "Avmc@123"

    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"
    MAX_IMPORT_BYTES: int = 10_000_000
    PORT: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s]: %(message)s",
    )
