import logging, os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_LEVEL = os.getenv("OSMS_LOG_LEVEL", "INFO").upper()

def setup_logging():
    # Configure root once
    logging.basicConfig(level=getattr(logging, _DEFAULT_LEVEL, logging.INFO), format=LOG_FORMAT)

    logger = logging.getLogger("OSMS")
    logger.setLevel(getattr(logging, _DEFAULT_LEVEL, logging.INFO))
    return logger

def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("OSMS")
    if not name:
        return base
    # accept both "chats" and "OSMS.services.chats"
    if name.startswith("OSMS."):
        name = name[len("OSMS."):]
    return base.getChild(name)

logger = setup_logging()
