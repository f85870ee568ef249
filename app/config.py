# app/config.py
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Classroom Backend"

    MONGODB_URI: str
    MONGO_DB: str = "test"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 10000

    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    LOG_FILE_NAME: Optional[str] = "classroom_backend.log"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
