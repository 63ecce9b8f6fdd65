"""
JRadiance - Logging Setup
==========================
One-time stdlib logging configuration. Modules log through
logging.getLogger("jradiance.<area>").
"""

import logging

from config.settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = None) -> None:
    numeric_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger("jradiance").setLevel(numeric_level)
