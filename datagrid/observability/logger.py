# datagrid/observability/logger.py

# structured JSON logger
import logging
import os
import sys

from pythonjsonlogger import jsonlogger


def _build_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(pathname)s %(lineno)d",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(config_module) -> None:
    """Configure root logging and align the datagrid loggers to JSON formatting.

    - Keeps existing log_info / log_exception calls intact.
    - Reuses existing access/error file handlers if present, but switches to JSON format.
    - Adds a JSON console handler (stdout) on the root logger, once.
    """
    root = logging.getLogger()
    root.setLevel(getattr(config_module, "LOG_LEVEL", "INFO"))

    formatter = _build_formatter()

    log_dir = getattr(config_module, "LOG_DIR", None)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    # Replace formatters on any existing file handlers
    for logger_name in ("datagrid.access", "datagrid.error"):
        for h in logging.getLogger(logger_name).handlers:
            h.setFormatter(formatter)

    have_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
        for h in root.handlers
    )
    if not have_console:
        console = logging.StreamHandler(stream=sys.stdout)
        console.setFormatter(formatter)
        root.addHandler(console)

    logging.getLogger("datagrid.startup").info("logging configured")
