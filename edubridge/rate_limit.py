"""
edubridge/rate_limit.py
Shared slowapi limiter, keyed by client address
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from edubridge.config.settings import settings

limiter = Limiter(key_func=get_remote_address)

UPLOAD_RATE_LIMIT = settings.UPLOAD_RATE_LIMIT
COMMENT_RATE_LIMIT = settings.COMMENT_RATE_LIMIT
