from market_health.indexer.client import IndexerClient, IndexerMetrics
from market_health.indexer.errors import FatalHttpError, IndexerHttpError, RateLimitedError, TransientHttpError

__all__ = [
    "IndexerClient",
    "IndexerMetrics",
    "IndexerHttpError",
    "FatalHttpError",
    "RateLimitedError",
    "TransientHttpError",
]
