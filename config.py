"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "tenant_portal")
DB_USER: str = os.getenv("DB_USER", "portal_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# ── Billing calendar ──────────────────────────────────────
# IANA zone used to turn an instant into a billing date.
BILLING_TIMEZONE: str = os.getenv("BILLING_TIMEZONE", "UTC")

# Upper bound on a single enumeration window.
MAX_WINDOW_DAYS: int = int(os.getenv("MAX_WINDOW_DAYS", "3660"))

# ── Notifications & dashboard ─────────────────────────────
REMINDER_DAYS_AHEAD: int = int(os.getenv("REMINDER_DAYS_AHEAD", "5"))
DASHBOARD_PERIODS: int = int(os.getenv("DASHBOARD_PERIODS", "2"))

# ── Late fees ─────────────────────────────────────────────
DEFAULT_GRACE_PERIOD_DAYS: int = int(os.getenv("DEFAULT_GRACE_PERIOD_DAYS", "0"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Currency ──────────────────────────────────────────────
DEFAULT_CURRENCY: str = "USD"
