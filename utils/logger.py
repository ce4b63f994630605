import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logger(log_file: Optional[str] = "logs/protocolwall.log", level: str = "INFO",
                 max_bytes: int = 10_000_000, backup_count: int = 5,
                 fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt)

    # Повторный вызов не должен дублировать обработчики
    for handler in list(logger.handlers):
        if getattr(handler, "_protocolwall", False):
            logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console._protocolwall = True
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(exist_ok=True, parents=True)
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setFormatter(formatter)
        handler._protocolwall = True
        logger.addHandler(handler)

    return logger
