import logging
import sys

_logging_configured = False


def setup_logging(log_level: str | int = logging.INFO, force_reset: bool = False) -> None:
    """Configure root logging once for the client process."""
    global _logging_configured

    if _logging_configured and not force_reset:
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if getattr(handler, "_vibeflo", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    console_handler._vibeflo = True

    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # Quiet libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _logging_configured = True
