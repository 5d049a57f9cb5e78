"""
Logging configuration for lore.

Keep CLI output clean by default; --verbose turns on debug logging.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress diagnostic output.

    This silences:
    - Python warnings (deprecation, etc.)
    - lore's own info/warning logs, e.g. skipped corrupt record files

    Args:
        quiet: If True, suppress diagnostics. If False, show warnings.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("lore").setLevel(logging.ERROR)
    else:
        warnings.filterwarnings("default")
        logging.getLogger("lore").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("lore").setLevel(logging.DEBUG)
