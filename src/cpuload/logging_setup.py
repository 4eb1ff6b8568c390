import logging
from logging.handlers import RotatingFileHandler


def setup_logging(log_level: str = "WARNING", log_file: str | None = None, tui: bool = False) -> None:
    default_formatter = logging.Formatter("%(asctime)s:%(name)s:%(levelname)s: %(message)s")
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # The dashboard owns the terminal, so it only gets the file handler
    if not tui:
        # stderr keeps log lines out of the redrawn stdout block
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(default_formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=2, delay=True)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(default_formatter)
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        # Keeps logging.lastResort from printing warnings to stderr
        root_logger.addHandler(logging.NullHandler())
