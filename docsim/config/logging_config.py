import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

    # Chatty HTTP clients
    for name in ("httpx", "openai", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)
