import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "aiosqlite", "asyncio")


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        return getattr(logging, raw_level.strip().upper(), logging.INFO)
    return logging.INFO


def configure_logging(level="INFO") -> None:
    """Configure the root logger once; safe to call again on reload."""
    resolved = _coerce_level(level)
    root = logging.getLogger()
    root.setLevel(resolved)

    if not root.handlers:
        handler = logging.StreamHandler()
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    if resolved > logging.DEBUG:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)
