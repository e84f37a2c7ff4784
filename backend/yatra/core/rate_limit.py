from slowapi import Limiter
from slowapi.util import get_remote_address

from yatra.core.settings import get_settings

# Per-address HTTP limits; the per-identity daily generation quota lives in yatra.core.quota
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().ENABLE_RATE_LIMITING)
