# datagrid/utils/logger.py

import logging
import os
import traceback

from datagrid import config

# Define formatter
formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")


def setup_logger(name, log_file, level):
    """A helper function to set up a logger.

    Without a log file the logger propagates to the root logger, so the host
    application's handlers (or configure_logging) decide where records go.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if log_file is None:
        return logger

    logger.propagate = False  # Prevent duplicate logs in parent loggers

    # Avoid adding handlers if they already exist (e.g., during reload)
    if not logger.handlers:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


if config.LOG_DIR:
    os.makedirs(config.LOG_DIR, exist_ok=True)
    access_log_file = os.path.join(config.LOG_DIR, "access.log")
    error_log_file = os.path.join(config.LOG_DIR, "error.log")
else:
    access_log_file = None
    error_log_file = None

access_logger = setup_logger("datagrid.access", access_log_file, config.LOG_LEVEL)
error_logger = setup_logger("datagrid.error", error_log_file, logging.WARNING)


def log_info(message):
    access_logger.info(message)


def log_warning(message):
    error_logger.warning(message)


def log_exception(e: Exception, context: str = ""):
    tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    error_logger.error(f"Exception in {context}:\n{tb}")
