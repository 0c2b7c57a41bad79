from typing import List
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Odontolegal Backend"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "odontolegal"
    POSTGRES_PORT: int = 5432

    # Store supervision: fixed delay, unbounded retries
    DB_RECONNECT_DELAY_SECONDS: float = 2.0
    DB_HEALTHCHECK_INTERVAL_SECONDS: float = 30.0

    # Auth
    SECRET_KEY: str = "change-me-in-production"  # openssl rand -hex 32
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # Uploads
    UPLOAD_DIR: str = "public/uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    MAX_UPLOAD_FILES: int = 10
    ALLOWED_UPLOAD_TYPES: List[str] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]

    # Provenance trail
    HISTORY_APPEND_RETRIES: int = 2

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
