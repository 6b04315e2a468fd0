import logging
import os
import sys
import json
import datetime
import colorama
from colorama import Fore, Style

# Windows terminal renkleri için init
colorama.init(autoreset=True)

# logging.LogRecord'un kendi alanları; geri kalanlar extra={} ile gelir
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    Servisler için tek satır JSON log
    """
    def format(self, record):
        log_record = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.name,
            "file": record.filename,
            "line": record.lineno
        }
        # extra={"boxes": 3} gibi alanlar
        for key, value in vars(record).items():
            if key not in _RESERVED and key not in log_record:
                log_record[key] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Konsol için renkli loglar
    """
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    FORMATS = {
        logging.DEBUG: Fore.CYAN + format_str + Style.RESET_ALL,
        logging.INFO: Fore.GREEN + format_str + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + format_str + Style.RESET_ALL,
        logging.ERROR: Fore.RED + format_str + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + format_str + Style.RESET_ALL
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.format_str)
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


def get_logger(name="Decoder", log_type="colored", level=None):
    """
    Logger oluşturur. Seviye verilmezse DECODER_LOG_LEVEL ortam değişkeni (varsayılan INFO).
    """
    if level is None:
        level = os.getenv("DECODER_LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(level)

        if log_type == "json":
            ch.setFormatter(JSONFormatter())
        else:
            ch.setFormatter(ColoredFormatter())

        logger.addHandler(ch)

    return logger
