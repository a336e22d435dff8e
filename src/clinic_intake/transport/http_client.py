"""HTTP client with connection pooling for remote services.

This module provides a pooled requests session with retry and timeout
settings taken from the transport configuration.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

if TYPE_CHECKING:
    from clinic_intake.config.schema import TransportConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 4
DEFAULT_POOL_BLOCK = True
DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_FACTOR = 0.3

# Uploads are POSTs and are never retried automatically
RETRY_METHODS = ["HEAD", "GET", "PUT", "DELETE", "OPTIONS"]
RETRY_STATUSES = [429, 500, 502, 503, 504]


@dataclass
class ConnectionPoolConfig:
    """Configuration for HTTP connection pooling.

    Attributes:
        max_connections: Maximum number of connections in the pool (>= 1)
        pool_block: Whether to block when the pool is exhausted
        retry_count: Number of retries for idempotent requests
        backoff_factor: Factor for exponential backoff between retries
        verify_tls: Whether to verify TLS certificates

    Example:
        >>> config = ConnectionPoolConfig(max_connections=2, retry_count=1)
        >>> pool = ConnectionPool(config)
        >>> session = pool.get_session()
    """
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    pool_block: bool = DEFAULT_POOL_BLOCK
    retry_count: int = DEFAULT_RETRY_COUNT
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    verify_tls: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_connections < 1:
            raise ValueError(
                f"max_connections must be >= 1, got {self.max_connections}"
            )
        if self.retry_count < 0:
            raise ValueError(
                f"retry_count must be >= 0, got {self.retry_count}"
            )
        if self.backoff_factor < 0:
            raise ValueError(
                f"backoff_factor must be >= 0, got {self.backoff_factor}"
            )

    @classmethod
    def from_transport_config(cls, transport: "TransportConfig") -> "ConnectionPoolConfig":
        """Build pool settings from the transport configuration section."""
        return cls(
            retry_count=transport.max_retries,
            backoff_factor=transport.backoff_factor,
            verify_tls=transport.verify_tls,
        )


class ConnectionPool:
    """Manages a pooled, retrying HTTP session. Thread-safe.

    Example:
        >>> with ConnectionPool() as pool:
        ...     response = pool.get_session().get(url)
    """

    def __init__(self, config: Optional[ConnectionPoolConfig] = None) -> None:
        self.config = config or ConnectionPoolConfig()
        self._session: Optional[requests.Session] = None
        self._lock = Lock()
        logger.debug(
            "ConnectionPool initialized with max_connections=%d, pool_block=%s",
            self.config.max_connections,
            self.config.pool_block,
        )

    def get_session(self) -> requests.Session:
        """Get or lazily create the pooled session."""
        with self._lock:
            if self._session is None:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> requests.Session:
        retry_strategy = Retry(
            total=self.config.retry_count,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=RETRY_METHODS,
            raise_on_status=False,
        )

        adapter = HTTPAdapter(
            pool_connections=self.config.max_connections,
            pool_maxsize=self.config.max_connections,
            pool_block=self.config.pool_block,
            max_retries=retry_strategy,
        )

        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.verify = self.config.verify_tls

        if not self.config.verify_tls:
            logger.warning("TLS certificate verification is disabled")

        logger.info(
            "Created HTTP session with pool_maxsize=%d, retry_count=%d",
            self.config.max_connections,
            self.config.retry_count,
        )
        return session

    def close(self) -> None:
        """Close the session and release pooled connections."""
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None
                logger.debug("ConnectionPool session closed")

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
