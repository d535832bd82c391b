import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _parse_int(env_var: str, default: int, *, minimum: int = 1) -> int:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = int(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid integer (got %r); defaulting to %d",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < minimum:
        logger.warning("%s must be >= %d; defaulting to %d", env_var, minimum, default)
        return default

    return value


def _parse_float(env_var: str, default: float) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid float (got %r); defaulting to %.2f",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < 0:
        logger.warning("%s cannot be negative; defaulting to %.2f", env_var, default)
        return default

    return value


def _parse_bool(env_var: str, default: bool = False) -> bool:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Rating constants are fixed for the lifetime of the process.
K_FACTOR = _parse_int("K_FACTOR", 32)
DEFAULT_RATING = _parse_int("DEFAULT_RATING", 1500)

RECORD_MATCH_MAX_ATTEMPTS = _parse_int("RECORD_MATCH_MAX_ATTEMPTS", 3)
RECORD_MATCH_BACKOFF_SECONDS = _parse_float("RECORD_MATCH_BACKOFF_SECONDS", 0.05)

SEED_SAMPLE_DATA = _parse_bool("SEED_SAMPLE_DATA")

PRODUCTION = "production"


def app_environment() -> str:
    """Return the deployment environment name, ``development`` when unset."""

    raw = os.getenv("APP_ENV") or os.getenv("ENVIRONMENT") or "development"
    return raw.strip().lower() or "development"


def is_production(environment: str | None = None) -> bool:
    env = (environment or app_environment()).strip().lower()
    return env == PRODUCTION
