from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    APP_NAME: str = "Faltas de Professores"
    AUTH_MODE: Literal["firebase", "mock"] = "mock"
    LOG_LEVEL: str = "INFO"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    STORAGE_BUCKET: str = "teachers"
    SUBSCRIBE_CHANGES: bool = True

    FIREBASE_CREDENTIALS_PATH: str = "./firebase-credentials.json"

    CORS_ORIGINS: str = "http://localhost:5173"

    # Remote reads and exports
    PAGE_SIZE: int = 1000
    EXPORT_CHUNK_SIZE: int = 2000
    SUBSTITUTE_CACHE_TTL: float = 300.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
