import os
from dotenv import load_dotenv

load_dotenv()

# --- Runtime ---
APP_ENV = os.getenv("APP_ENV", "production")
IS_DEVELOPMENT = APP_ENV == "development"
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Auth and expense routes live under this prefix, /health stays at the root
API_PREFIX = os.getenv("API_PREFIX", "/api")

# --- JWT Configuration ---
JWT_SECRET = os.getenv("JWT_SECRET", "change-this-secret-key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_DAYS = 7

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/expenses.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- CORS (comma-separated) ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# --- Pagination ---
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
