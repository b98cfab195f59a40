"""
Shared slowapi limiter, keyed by the caller's bearer token.
"""
from slowapi import Limiter

from taskhub.features.users.dependencies import get_authorization_header


limiter = Limiter(key_func=get_authorization_header)
