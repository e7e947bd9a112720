from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    API_BASE_URL: str = "http://127.0.0.1:8080/api"
    API_TIMEOUT_SECONDS: float = 30.0
    # "http" talks to the catalog backend, "mock" keeps everything in memory
    CATALOG_BACKEND: str = "http"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    SESSION_TTL_SECONDS: int = 3600
    SESSION_SWEEP_SECONDS: int = 60
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
