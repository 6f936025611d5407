"""PushSession configuration.

All config comes from environment variables.
"""

import os
from pathlib import Path


# ─── Server ─────────────────────────────────────────────────────
PORT = int(os.environ.get("PORT", 9050))
DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
VERSION = "1.0.0"

# ─── Logging ──────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
# Empty = console only
LOGS_DIR = Path(os.environ["LOGS_DIR"]) if os.environ.get("LOGS_DIR") else None

# ─── Session waterfall ────────────────────────────────────────
SESSION_TIMEOUT_MS = int(os.environ.get("SESSION_TIMEOUT_MS", 30 * 60 * 1000))
RANDOMNESS_LENGTH = int(os.environ.get("RANDOMNESS_LENGTH", 12))
USE_STUBS = os.environ.get("USE_STUBS", "false").lower() == "true"
CLIENT_ID_LIFETIME_YEARS = int(os.environ.get("CLIENT_ID_LIFETIME_YEARS", 2))

# ─── Push IDs ─────────────────────────────────────────────────
# true = random.SystemRandom instead of the seeded LCG
PUSHID_SECURE_RANDOM = os.environ.get("PUSHID_SECURE_RANDOM", "false").lower() == "true"

# ─── Cookies ──────────────────────────────────────────────────
COOKIE_PREFIX = os.environ.get("COOKIE_PREFIX", "")
COOKIE_PATH = os.environ.get("COOKIE_PATH", "/")
COOKIE_SECURE = os.environ.get("COOKIE_SECURE", "true").lower() == "true"
COOKIE_SAMESITE = os.environ.get("COOKIE_SAMESITE", "Strict")
COOKIE_DOMAIN = os.environ.get("COOKIE_DOMAIN", "")

# ─── CORS ─────────────────────────────────────────────────────
# Comma-separated origins. "*" = any origin, without credentials
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

SESSION_KEYS = ("cID", "sID", "eID", "seqID")


def cookie_options() -> dict:
    """Default cookie attributes for the server-side storage handler."""
    options = {
        "path": COOKIE_PATH,
        "secure": COOKIE_SECURE,
        "same_site": COOKIE_SAMESITE,
    }
    if COOKIE_DOMAIN:
        options["domain"] = COOKIE_DOMAIN
    return options
