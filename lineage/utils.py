import logging
import sys

from lineage.core import config

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, configuring the root handler on first use."""
    global _configured
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root = logging.getLogger("lineage")
        root.addHandler(handler)
        root.setLevel(config.LOG_LEVEL)
        root.propagate = False
        _configured = True
    if not name.startswith("lineage"):
        name = f"lineage.{name}"
    return logging.getLogger(name)
