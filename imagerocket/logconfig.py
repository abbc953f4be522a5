"""
Logging Configuration
Sets up the 'imagerocket' logger for the command line.
"""
import logging
import sys

LOGGER_NAME = "imagerocket"
LOGLEVELS = ['CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG']


def add_argument(parser, loglevel_default='WARNING'):
    """Add --loglevel to an argparse parser."""
    parser.add_argument("--loglevel", choices=LOGLEVELS, default=loglevel_default,
                        help="Set logging level")


def setup(level='WARNING', stream=None):
    """
    Configures the logger for the 'imagerocket' namespace.

    Args:
        level: Logging level, as a name ('DEBUG') or a number (logging.DEBUG)
        stream: Where to write; defaults to stderr.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate lines when setup() runs more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    logger.addHandler(handler)
    logger.debug("Logging initialized.")
