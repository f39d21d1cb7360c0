"""Application configuration — environment variables and derived constants.

Loads ``BOT_TOKEN``, ``API_BASE_URL``, ``REQUEST_TIMEOUT``, ``POLL_TIMEOUT``
and ``ALLOWED_UPDATES`` from the environment via ``python-dotenv``.  Values
are resolved at import time so other modules can ``from config import …``
without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import EdgegramLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

# ── Logger (used for startup diagnostics at the bottom of this module) ───────
logger = EdgegramLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_int(raw: str | None, default: int) -> int:
    """Parse *raw* as an int, falling back to *default* on blank or junk input."""
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric config value", extra={"value": raw, "default": default})
        return default


def _parse_allowed_updates(raw: str | None) -> list[str] | None:
    """Parse a comma-separated list of update kinds.

    ``"message,callback_query"`` → ``["message", "callback_query"]``.
    Returns ``None`` when unset so Telegram keeps its own default.
    """
    if not raw:
        return None
    kinds = [token.strip() for token in raw.split(",") if token.strip()]
    return kinds or None


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
API_BASE_URL: str = os.environ.get("API_BASE_URL", "https://api.telegram.org").rstrip("/")
REQUEST_TIMEOUT: int = _parse_int(os.environ.get("REQUEST_TIMEOUT"), 10)
POLL_TIMEOUT: int = _parse_int(os.environ.get("POLL_TIMEOUT"), 30)
ALLOWED_UPDATES: list[str] | None = _parse_allowed_updates(os.environ.get("ALLOWED_UPDATES"))


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set", extra={"api_base_url": API_BASE_URL})
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set")

logger.debug(
    "Request settings resolved",
    extra={"request_timeout": REQUEST_TIMEOUT, "poll_timeout": POLL_TIMEOUT, "allowed_updates": ALLOWED_UPDATES},
)
