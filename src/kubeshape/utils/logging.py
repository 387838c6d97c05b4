"""Logging setup."""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the root logger for the controller process."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    if log_file:
        logging.basicConfig(filename=log_file, level=numeric_level, format=LOG_FORMAT, force=True)
    else:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)

    # The kubernetes client logs every request at DEBUG
    logging.getLogger("kubernetes").setLevel(max(numeric_level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))
