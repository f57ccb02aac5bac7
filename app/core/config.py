# app/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


SERVICE_NAME = os.getenv("SERVICE_NAME", "orion-program")

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orion_program.db")
SQL_ECHO = _get_bool("SQL_ECHO")

# Optimistic concurrency on program documents
WRITE_CONFLICT_RETRIES = int(os.getenv("WRITE_CONFLICT_RETRIES", "3"))

# User Service (area leader lookups)
USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", "http://localhost:8092/service/user")
USER_SERVICE_CONNECT_TIMEOUT = float(os.getenv("USER_SERVICE_CONNECT_TIMEOUT", "5"))
USER_SERVICE_READ_TIMEOUT = float(os.getenv("USER_SERVICE_READ_TIMEOUT", "10"))
USER_SERVICE_MAX_RETRIES = int(os.getenv("USER_SERVICE_MAX_RETRIES", "3"))
USER_SERVICE_RETRY_DELAY = float(os.getenv("USER_SERVICE_RETRY_DELAY", "0.5"))

# API
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8091"))
