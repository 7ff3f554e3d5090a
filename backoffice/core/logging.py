import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging once for the app and the scripts."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
