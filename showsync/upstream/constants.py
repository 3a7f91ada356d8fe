"""HTTP constants for the upstream catalog client.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_TOO_MANY_REQUESTS = 429

# Attempt ceiling shared by every upstream call site
MAX_ATTEMPTS = 3

# Maximum retry delay cap for rate limiting (seconds)
MAX_RETRY_AFTER_SECONDS = 60

# Tokens are reused only while more than this much lifetime remains
TOKEN_SAFETY_MARGIN_SECONDS = 30

# Lifetime trimmed from expires_in, and the floor applied afterwards
TOKEN_EXPIRY_SKEW_SECONDS = 60
TOKEN_MIN_LIFETIME_SECONDS = 60

# Upstream error bodies are truncated to this many characters
MAX_ERROR_BODY_CHARS = 2000
