import logging

from .json_logging import JSONFormatter

LOGGER_NAME = "cloud_file_signer"


def configure_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Attach one handler to the package logger; plain or JSON lines."""
    logger = logging.getLogger(LOGGER_NAME)
    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.handlers.clear()
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s", "%Y-%m-%d %H:%M:%S")
        )
    logger.addHandler(handler)
    logger.setLevel(resolved)
    return logger
