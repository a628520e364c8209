import logging

from wallet_hub.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a module-scoped logger with a consistent format and the configured level.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    logger = logging.getLogger(name)
    logger.setLevel(settings.log_level.upper())
    return logger


def mask_card_number(card_number: str) -> str:
    digits = "".join(ch for ch in card_number if ch.isalnum())
    if len(digits) <= 4:
        return "*" * len(digits)
    return "*" * (len(digits) - 4) + digits[-4:]
