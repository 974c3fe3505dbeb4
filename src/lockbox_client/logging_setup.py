import logging

from lockbox_client.config import client_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Module logger under the "lockbox_client" hierarchy. The console handler
    is attached once, to the package root logger.
    Never log master passwords, entries, blobs or tokens.
    """
    root = logging.getLogger("lockbox_client")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(client_settings.LOG_LEVEL.upper())
    return logging.getLogger(name)
