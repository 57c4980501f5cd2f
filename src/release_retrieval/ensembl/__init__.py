"""Ensembl REST service support: rate-limit handling and request pacing."""

from release_retrieval.ensembl.client import EnsemblClient
from release_retrieval.ensembl.rate_limiter import RateLimiter, TokenBucket
from release_retrieval.ensembl.response_processor import (
    MAX_TIMES_TO_WAIT,
    EnsemblServiceResponseProcessor,
    EnsemblServiceResult,
    RequestsRemaining,
    get_num_requests_remaining,
)

__all__ = [
    "MAX_TIMES_TO_WAIT",
    "EnsemblClient",
    "EnsemblServiceResponseProcessor",
    "EnsemblServiceResult",
    "RateLimiter",
    "RequestsRemaining",
    "TokenBucket",
    "get_num_requests_remaining",
]
