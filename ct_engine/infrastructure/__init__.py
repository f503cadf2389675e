from .feed_client import FeedClient, FeedFetchError, parse_feed
from .retry import RetryConfig, retry_async
from .schema import ensure_schema

__all__ = [
    "FeedClient",
    "FeedFetchError",
    "parse_feed",
    "RetryConfig",
    "retry_async",
    "ensure_schema",
]
