"""
Logging setup shared by the desk bots and the services.

Everything logs under the "balancedesk" logger tree: services through
logging.getLogger(__name__), the Telegram layer through `bot_logger`
("balancedesk.bot"). A single stdout handler sits on the tree root.
"""

import logging
import sys

PACKAGE_LOGGER = "balancedesk"
LOG_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the stdout handler to the package logger and return the bot logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    # Re-running setup must not stack handlers
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    package_logger.addHandler(handler)

    return logging.getLogger(f"{PACKAGE_LOGGER}.bot")


def apply_environment(environment: str) -> None:
    """DEBUG in development, INFO everywhere else."""
    level = logging.DEBUG if environment == "development" else logging.INFO
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


# Global logger instance
bot_logger = setup_logging()
