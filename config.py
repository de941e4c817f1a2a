# config.py - Environment driven settings for the verifier service

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# --- Configuration Constants ---
DEFAULT_TAPPD_ENDPOINT = "http://localhost:8090"
DEFAULT_WISE_API_URL = "https://api.transferwise.com"
DEFAULT_KEY_PURPOSE = "wise-api-key"
LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    tappd_endpoint: str = DEFAULT_TAPPD_ENDPOINT
    key_purpose: str = DEFAULT_KEY_PURPOSE
    wise_api_url: str = DEFAULT_WISE_API_URL
    request_timeout: float = 30.0
    platform: str = "wise"
    jwt_issuer: str = "privy.io"
    jwt_audience: str = ""
    jwt_verification_key: str = ""
    jwt_algorithm: str = "ES256"
    disable_jwt_auth: bool = False


def load_settings():
    """Read Settings from the process environment (after .env is loaded)."""
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        tappd_endpoint=(
            os.getenv("DSTACK_SIMULATOR_ENDPOINT")
            or os.getenv("TAPPD_ENDPOINT", DEFAULT_TAPPD_ENDPOINT)
        ),
        key_purpose=os.getenv("CREDENTIAL_KEY_PURPOSE", DEFAULT_KEY_PURPOSE),
        wise_api_url=os.getenv("WISE_API_URL", DEFAULT_WISE_API_URL).rstrip("/"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
        platform=os.getenv("PLATFORM_NAME", "wise"),
        jwt_issuer=os.getenv("JWT_ISSUER", "privy.io"),
        jwt_audience=os.getenv("JWT_AUDIENCE", ""),
        jwt_verification_key=os.getenv("JWT_VERIFICATION_KEY", "").replace("\\n", "\n"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "ES256"),
        disable_jwt_auth=_env_bool("DISABLE_JWT_AUTH"),
    )


def configure_logging(level="INFO"):
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
