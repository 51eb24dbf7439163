"""Application configuration"""

import logging
from dotenv import load_dotenv

from .loader import load_settings
from .core import Core
from .cache import Cache
from .documents import Documents

load_dotenv()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=logging.INFO)
logging.getLogger("discord.gateway").setLevel(logging.WARNING)

_SETTINGS = load_settings()

core = Core(_SETTINGS)
cache = Cache(_SETTINGS)
documents = Documents(_SETTINGS)


class Config:
    core = core
    cache = cache
    documents = documents


__all__ = ["core", "cache", "documents", "Config"]
