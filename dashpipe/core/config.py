# dashpipe/core/config.py
import os
import logging
from typing import Optional, Tuple
from dotenv import load_dotenv

load_dotenv()

# Configure logging for pipeline events
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Development-only salts, refused in production
_DEV_SESSION_SECRET = "proxy_secret_key_!@#$"
_DEV_DELIVERY_SECRET = "cdn_secret_key_$%^&"


class DashpipeConfigError(Exception):
    """Raised when the pipeline configuration is invalid"""
    pass


def validate_secret(name: str, value: Optional[str], dev_default: str, production: bool) -> str:
    """Return the configured hash salt, falling back to the development default"""
    if not value:
        if production:
            raise DashpipeConfigError(f"{name} environment variable is required in production")
        logger.warning(f"{name} not set, using the development default")
        return dev_default

    if production and value == dev_default:
        raise DashpipeConfigError(f"{name} must not use the development default in production")

    if len(value) < 16:
        logger.warning(f"{name} is shorter than 16 characters")

    return value


def validate_seconds(name: str, raw: Optional[str], default: int, minimum: int = 1) -> int:
    """Parse a positive duration given in seconds"""
    if not raw:
        return default

    try:
        seconds = int(raw)
    except ValueError:
        raise DashpipeConfigError(f"{name} must be a valid integer")

    if seconds < minimum:
        raise DashpipeConfigError(f"{name} too short (minimum {minimum} seconds)")

    return seconds


def validate_ttl_pair(session_ttl: int, delivery_ttl: int) -> None:
    """Delivery access is granted in slices much shorter than a session"""
    if delivery_ttl >= session_ttl:
        raise DashpipeConfigError(
            f"DELIVERY_TTL_SECONDS ({delivery_ttl}) must be shorter than SESSION_TTL_SECONDS ({session_ttl})"
        )
    if delivery_ttl > 600:
        logger.warning("Delivery token TTL is long (>10 minutes), leaked manifests stay usable longer")


def parse_node_pool(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ("cs5", "cs6", "cs7", "cs8")
    nodes = tuple(node.strip() for node in raw.split(",") if node.strip())
    if not nodes:
        raise DashpipeConfigError("NODE_POOL must name at least one node")
    return nodes


def parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

try:
    SESSION_SECRET = validate_secret("SESSION_SECRET", os.getenv("SESSION_SECRET"), _DEV_SESSION_SECRET, IS_PRODUCTION)
    DELIVERY_SECRET = validate_secret("DELIVERY_SECRET", os.getenv("DELIVERY_SECRET"), _DEV_DELIVERY_SECRET, IS_PRODUCTION)

    SESSION_TTL_SECONDS = validate_seconds("SESSION_TTL_SECONDS", os.getenv("SESSION_TTL_SECONDS"), 60 * 60)
    DELIVERY_TTL_SECONDS = validate_seconds("DELIVERY_TTL_SECONDS", os.getenv("DELIVERY_TTL_SECONDS"), 60)
    validate_ttl_pair(SESSION_TTL_SECONDS, DELIVERY_TTL_SECONDS)

    SWEEP_INTERVAL_SECONDS = validate_seconds("SWEEP_INTERVAL_SECONDS", os.getenv("SWEEP_INTERVAL_SECONDS"), 30)

    # Simulated edge pool; selection is per issuance, not sticky
    NODE_POOL = parse_node_pool(os.getenv("NODE_POOL"))
    NODE_HOST_TEMPLATE = os.getenv("NODE_HOST_TEMPLATE", "bpcdn{node}.example.lk")

    # Upstream origin (Shaka's public angel-one ClearKey demo)
    UPSTREAM_SCHEME = os.getenv("UPSTREAM_SCHEME", "https")
    UPSTREAM_HOST = os.getenv("UPSTREAM_HOST", "storage.googleapis.com")
    UPSTREAM_BASE_PATH = os.getenv("UPSTREAM_BASE_PATH", "/shaka-demo-assets/angel-one-clearkey").rstrip("/")
    UPSTREAM_TIMEOUT_SECONDS = validate_seconds("UPSTREAM_TIMEOUT_SECONDS", os.getenv("UPSTREAM_TIMEOUT_SECONDS"), 30)
    UPSTREAM_USER_AGENT = os.getenv("UPSTREAM_USER_AGENT", "DashPipe/1.0")

    RATE_LIMIT_ENABLED = parse_bool(os.getenv("RATE_LIMIT_ENABLED"), True)

    logger.info("Pipeline configuration validated successfully")

except DashpipeConfigError as e:
    logger.error(f"Pipeline configuration error: {e}")
    raise
except Exception as e:
    logger.error(f"Unexpected configuration error: {e}")
    raise DashpipeConfigError(f"Configuration validation failed: {e}")

# Demo accounts (username -> password); hashed once per process context
ACCOUNTS = {
    "demo": "demo123",
    "test": "test456",
    "admin": "admin789",
}

# ClearKey catalog (key id hex -> key hex). These are the public test keys
# of Shaka Player's angel-one-clearkey demo stream.
CLEARKEYS = {
    "9ab40503e44b480293256257542f2299": "166630c67582ac7d76e5b8fc8c42f083",
}

# Security headers configuration
SECURITY_HEADERS = {
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains" if IS_PRODUCTION else None,
}

# Rate limiting configuration
RATE_LIMITS = {
    "auth": os.getenv("RATE_LIMIT_AUTH", "5/minute"),
    "gate": os.getenv("RATE_LIMIT_GATE", "30/minute"),
    "default": "300/minute",
}
