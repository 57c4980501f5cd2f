"""Utility functions and helpers."""

from release_retrieval.utils.ftp_client import (
    FTPClient,
    FTPClientConfig,
    FTPReply,
    FTPTransfer,
)
from release_retrieval.utils.gunzip import GUnzipTask, gunzip_all
from release_retrieval.utils.http_client import (
    ConnectionError,
    ConnectTimeoutError,
    DownloadedFile,
    HTTPClient,
    HTTPClientConfig,
    HTTPClientError,
    HTTPResponse,
    TimeoutError,
    TransportFailure,
)
from release_retrieval.utils.logging import configure_retriever_logger

__all__ = [
    "ConnectTimeoutError",
    "ConnectionError",
    "DownloadedFile",
    "FTPClient",
    "FTPClientConfig",
    "FTPReply",
    "FTPTransfer",
    "GUnzipTask",
    "HTTPClient",
    "HTTPClientConfig",
    "HTTPClientError",
    "HTTPResponse",
    "TimeoutError",
    "TransportFailure",
    "configure_retriever_logger",
    "gunzip_all",
]
