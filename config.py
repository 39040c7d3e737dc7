import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATA_DIR = os.getenv("DATA_DIR", os.path.join(BASE_DIR, "data"))
STRICT_READS = _flag("BOOKSTORE_STRICT_READS")
ENFORCE_ROLES = _flag("ENFORCE_ROLES")
JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
TOKEN_TTL_DAYS = 7
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 3001))
LOW_STOCK_THRESHOLD = 10
