import os

from .base import *  # noqa: F401,F403

# bearer tokens are signed with this key; there is no safe default
SECRET_KEY = os.getenv("SECRET_KEY", "")
if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY must be set when APP_ENV=production")

DEBUG = False
