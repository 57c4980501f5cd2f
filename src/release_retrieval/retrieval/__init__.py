"""File retrieval components.

This module provides:
- DataRetriever protocol and RetrievalTarget configuration
- RetrievalError and its variants
- FileRetriever, the staleness-checking HTTP/FTP download engine
- AuthenticatedTransport and CosmicUrlResolver for composed retrievers
- Factory functions selecting a composition from configuration
"""

from release_retrieval.retrieval.auth import AuthenticatedTransport
from release_retrieval.retrieval.cosmic import CosmicUrlResolver
from release_retrieval.retrieval.factory import (
    build_retriever,
    create_authenticated_retriever,
    create_cosmic_retriever,
    create_file_retriever,
)
from release_retrieval.retrieval.file_retriever import FileRetriever
from release_retrieval.retrieval.protocol import (
    Credentials,
    DataRetriever,
    FtpTransferError,
    InvalidConfigurationError,
    MissingOutputError,
    RetrievalError,
    RetrievalFailure,
    RetrievalTarget,
    RetriesExceeded,
    UnsupportedSchemeError,
)
from release_retrieval.retrieval.retry_handler import RetryConfig, RetryHandler
from release_retrieval.retrieval.transport import HttpTransport, Transport

__all__ = [
    "AuthenticatedTransport",
    "CosmicUrlResolver",
    "Credentials",
    "DataRetriever",
    "FileRetriever",
    "FtpTransferError",
    "HttpTransport",
    "InvalidConfigurationError",
    "MissingOutputError",
    "RetrievalError",
    "RetrievalFailure",
    "RetrievalTarget",
    "RetriesExceeded",
    "RetryConfig",
    "RetryHandler",
    "Transport",
    "UnsupportedSchemeError",
    "build_retriever",
    "create_authenticated_retriever",
    "create_cosmic_retriever",
    "create_file_retriever",
]
