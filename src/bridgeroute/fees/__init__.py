"""Bridge fee quoting.

Quoters:
- Socket: external bridge aggregator quote API
- Fallback: deterministic formula from the configured fee tables
- Cached: per-quote cache around another quoter
"""

from bridgeroute.fees.base import FeeQuoter
from bridgeroute.fees.cached import CachingFeeQuoter
from bridgeroute.fees.factory import create_fallback_model, create_fee_quoter
from bridgeroute.fees.fallback import FallbackFeeModel, volume_discount
from bridgeroute.fees.socket_api import SocketFeeQuoter

__all__ = [
    "FeeQuoter",
    "CachingFeeQuoter",
    "FallbackFeeModel",
    "SocketFeeQuoter",
    "create_fallback_model",
    "create_fee_quoter",
    "volume_discount",
]
