import os
from pathlib import Path
from dotenv import load_dotenv

# Load the .env file from backend/.env
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')


def _env_bool(name, default="false"):
    return os.getenv(name, default).lower() == "true"


class Settings:
    DATABASE_URL = os.getenv("DB_URL", "sqlite:///./floodwatch.db")
    DB_MAX_RETRIES = int(os.getenv("DB_MAX_RETRIES", "10"))
    DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", "2"))
    SQLALCHEMY_DEBUG = _env_bool("SQLALCHEMY_DEBUG")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

    SEED_ADMIN = _env_bool("SEED_ADMIN", "true")
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@floodrisk.com")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")


settings = Settings()
