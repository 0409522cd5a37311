"""
config.py
---------
Central configuration module. Loads process settings from the .env file
and exposes them as typed constants.

Database descriptors and table maps are not defined here; they come from
a DatabaseConfig source (see db/config_source.py).
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── Database configuration source ─────────────────────────
DB_ENV_PREFIX: str = os.getenv("DB_ENV_PREFIX", "DB_")
DB_CONNECT_TIMEOUT: int = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))

# ── Query defaults ────────────────────────────────────────
DEFAULT_SELECT_LIMIT: int = int(os.getenv("DEFAULT_SELECT_LIMIT", "1000"))
DEFAULT_LIKE_LIMIT: int = int(os.getenv("DEFAULT_LIKE_LIMIT", "10"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE: str = os.getenv("LOG_FILE", "")
