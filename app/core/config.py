import os
from dotenv import load_dotenv

load_dotenv()

# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("SQLITE_URL", "sqlite+aiosqlite:///./rental.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# -----------------------
# JWT Config
# -----------------------
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable must be set")

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
OWNER_ROLE = os.getenv("OWNER_ROLE", "owner")

# -----------------------
# Booking Config
# -----------------------
CASH_DEPOSIT_AMOUNT = int(os.getenv("CASH_DEPOSIT_AMOUNT", "5000"))  # flat, not per vehicle
ADVANCE_RATE = float(os.getenv("ADVANCE_RATE", "0.10"))

DOCUMENT_STORAGE_DIR = os.getenv("DOCUMENT_STORAGE_DIR", "./uploads")

# Unsubmitted drafts live in memory only
WIZARD_IDLE_TTL_SECONDS = int(os.getenv("WIZARD_IDLE_TTL_SECONDS", "3600"))
WIZARD_MAX_DRAFTS_PER_USER = int(os.getenv("WIZARD_MAX_DRAFTS_PER_USER", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
