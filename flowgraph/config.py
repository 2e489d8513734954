"""Runtime settings read from the environment (and a local .env file)."""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            "ignoring non-integer %s=%r, using %d", name, raw, default
        )
        return default
    return value if value > 0 else default


# upper bound on stack pops for one merge/starter search
MAX_ITERATIONS = _int_env("FLOWGRAPH_MAX_ITERATIONS", 1000)

# upper bound on queue pops when collecting a block's body
BLOCK_SCAN_LIMIT = _int_env("FLOWGRAPH_BLOCK_SCAN_LIMIT", 5000)

LOG_LEVEL = os.getenv("FLOWGRAPH_LOG_LEVEL", "WARNING").upper()

# comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for the server and CLI entry points."""
    logging.basicConfig(
        level=(level or LOG_LEVEL),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
