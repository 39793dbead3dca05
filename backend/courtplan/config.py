"""
Runtime configuration read from the environment (and a local .env file).
"""
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtplan.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())

# Fallbacks when neither the encounter, phase nor division carries a value
DEFAULT_MATCH_MINUTES = int(os.getenv("DEFAULT_MATCH_MINUTES", "20"))
DEFAULT_REST_MINUTES = int(os.getenv("DEFAULT_REST_MINUTES", "15"))
