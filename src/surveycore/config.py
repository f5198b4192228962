import logging
import os


class Config:
    LOG_LEVEL = os.environ.get("SURVEYCORE_LOG_LEVEL", "WARNING")
    LOG_FORMAT = os.environ.get(
        "SURVEYCORE_LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Text answers shown before "show all"
    TEXT_PREVIEW_LIMIT = int(os.environ.get("SURVEYCORE_TEXT_PREVIEW_LIMIT", "10"))
    UNKNOWN_USER = os.environ.get("SURVEYCORE_UNKNOWN_USER", "unknown user")

    PASSWORD_HASH_METHOD = os.environ.get("SURVEYCORE_PASSWORD_HASH_METHOD", "pbkdf2:sha256")
    PASSWORD_SALT_LENGTH = int(os.environ.get("SURVEYCORE_PASSWORD_SALT_LENGTH", "16"))


def configure_logging(level=None):
    """Attach a stream handler to the package logger. Safe to call repeatedly."""
    logger = logging.getLogger("surveycore")
    logger.setLevel(level or Config.LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Config.LOG_FORMAT))
        logger.addHandler(handler)
    return logger
