# backend/tuition_tracker/config.py
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # DB URL used by SQLAlchemy. Hosted Postgres URLs get sslmode=require automatically.
    DATABASE_URL: str = "postgresql+psycopg2://postgres:postgres@db:5432/tuition"

    # Access tokens are issued by the identity provider and signed with this secret
    AUTH_JWT_SECRET: str = "change-me"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"

    # App options
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    RECENT_LESSONS_LIMIT: int = 20
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
