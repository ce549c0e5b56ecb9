"""
Logging configuration for the bridge.

Everything goes to stdout/stderr so the hosting platform's log viewer
shows the same lines as the activity log.
"""
import logging
import sys

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = 'INFO') -> None:
    """Configure the root logger once per process."""
    global _configured

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # Upstream HTTP libraries are chatty at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    _configured = True
