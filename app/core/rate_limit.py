from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client IP; individual routes declare their own limits
limiter = Limiter(key_func=get_remote_address)
