"""Upstream catalog API access.

This module provides authenticated, retrying access to the upstream API:
- Client-credentials token exchange with an in-process token cache
- Bounded retries on 401 (token refresh) and 429 (Retry-After backoff)
- Secret lookup with a process-lifetime cache
- Header redaction for logs
- Metrics collection for observability
"""

from showsync.upstream.auth import TokenProvider
from showsync.upstream.client import RetryingHttpClient
from showsync.upstream.constants import (
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
    MAX_ATTEMPTS,
    MAX_RETRY_AFTER_SECONDS,
)
from showsync.upstream.metrics import UpstreamMetrics
from showsync.upstream.models import RetryPolicy, Token, UpstreamRequest
from showsync.upstream.redact import redact_headers, redact_url_credentials
from showsync.upstream.secrets import (
    CachedSecretStore,
    EnvironmentSecretStore,
    SecretStore,
)


__all__ = [
    # Client
    "RetryingHttpClient",
    # Auth
    "TokenProvider",
    # Secrets
    "CachedSecretStore",
    "EnvironmentSecretStore",
    "SecretStore",
    # Models
    "RetryPolicy",
    "Token",
    "UpstreamRequest",
    # Constants
    "HTTP_STATUS_NOT_FOUND",
    "HTTP_STATUS_TOO_MANY_REQUESTS",
    "HTTP_STATUS_UNAUTHORIZED",
    "MAX_ATTEMPTS",
    "MAX_RETRY_AFTER_SECONDS",
    # Metrics
    "UpstreamMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
