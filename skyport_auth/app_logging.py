"""Process-wide logging setup."""

import logging


def setup_logging(level: str = "INFO") -> None:
    """Log to stderr with timestamps. A no-op if the root logger is already configured."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
