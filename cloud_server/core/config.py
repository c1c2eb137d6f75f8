import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]
ENV_PATH = ROOT_DIR / ".env"


def load_env_file(path: Path = ENV_PATH) -> bool:
    """Load `path` into os.environ. Variables already set are kept."""
    if not path.exists():
        return False
    return load_dotenv(path, override=False)


load_env_file()

DEFAULT_PORT = 3010
DEFAULT_HOST = "0.0.0.0"
DEFAULT_HANDLER = "cloud_server.main_cloud:app"
DEFAULT_LOG_LEVEL = "info"

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

MIN_PORT = 1
MAX_PORT = 65535


def resolve_port(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Return the port to listen on.

    A missing or blank PORT means the default. A value that is not a
    decimal integer in [1, 65535] also means the default, with a warning.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get("PORT")
    if raw is None or not raw.strip():
        return DEFAULT_PORT

    value = raw.strip()
    if not (value.isascii() and value.isdigit()):
        logger.warning("Ignoring non-numeric PORT=%r, using %d", raw, DEFAULT_PORT)
        return DEFAULT_PORT

    port = int(value)
    if not MIN_PORT <= port <= MAX_PORT:
        logger.warning("Ignoring out-of-range PORT=%r, using %d", raw, DEFAULT_PORT)
        return DEFAULT_PORT
    return port


def _resolve_log_level(environ: Mapping[str, str]) -> str:
    level = environ.get("LOG_LEVEL", "").strip().lower()
    if not level:
        return DEFAULT_LOG_LEVEL
    if level not in LOG_LEVELS:
        logger.warning("Unknown LOG_LEVEL=%r, using %r", level, DEFAULT_LOG_LEVEL)
        return DEFAULT_LOG_LEVEL
    return level


@dataclass(frozen=True)
class Configuration:
    """Listening configuration, resolved once at process start."""

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    handler: str = DEFAULT_HANDLER
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Configuration":
        environ = os.environ if environ is None else environ
        return cls(
            port=resolve_port(environ),
            host=environ.get("HOST", "").strip() or DEFAULT_HOST,
            handler=environ.get("CLOUD_HANDLER", "").strip() or DEFAULT_HANDLER,
            log_level=_resolve_log_level(environ),
        )
