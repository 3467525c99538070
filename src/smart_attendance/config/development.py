from .base import *  # noqa: F401,F403
from .base import env_bool

DEBUG = True
LOG_LEVEL = "DEBUG"

# schema.sql / indexes are idempotent, so applying them on startup is safe
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "1")
