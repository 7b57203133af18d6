"""Service and business logic constants."""

# ============================================================================
# Authentication
# ============================================================================

# Lifetime of a signed App Store Connect token (seconds)
TOKEN_LIFETIME_SECONDS = 20 * 60

# A cached token is renewed this long before it expires (seconds)
TOKEN_REFRESH_BUFFER_SECONDS = 60

# Audience claim required by App Store Connect
TOKEN_AUDIENCE = "appstoreconnect-v1"

# Secret store keys for the single active credential set
SECRET_KEY_API_KEY_ID = "xcodeCloud.apiKeyId"
SECRET_KEY_ISSUER_ID = "xcodeCloud.issuerId"
SECRET_KEY_PRIVATE_KEY = "xcodeCloud.privateKey"

# ============================================================================
# Polling
# ============================================================================

# Effective floor for the configured polling interval (milliseconds)
POLL_MINIMUM_INTERVAL_MS = 10_000

# Upper bound for the failure backoff delay (milliseconds)
POLL_MAX_BACKOFF_MS = 5 * 60 * 1000

# Fixed refresh interval while a log document tails a running build (seconds)
LOG_TAIL_INTERVAL_SECONDS = 5

# ============================================================================
# Listing limits
# ============================================================================

PRODUCTS_PAGE_LIMIT = 200
WORKFLOWS_PAGE_LIMIT = 200
BUILD_RUNS_PAGE_LIMIT = 25
BUILD_ACTIONS_PAGE_LIMIT = 50
ARTIFACTS_PAGE_LIMIT = 50

__all__ = [
    'TOKEN_LIFETIME_SECONDS',
    'TOKEN_REFRESH_BUFFER_SECONDS',
    'TOKEN_AUDIENCE',
    'SECRET_KEY_API_KEY_ID',
    'SECRET_KEY_ISSUER_ID',
    'SECRET_KEY_PRIVATE_KEY',
    'POLL_MINIMUM_INTERVAL_MS',
    'POLL_MAX_BACKOFF_MS',
    'LOG_TAIL_INTERVAL_SECONDS',
    'PRODUCTS_PAGE_LIMIT',
    'WORKFLOWS_PAGE_LIMIT',
    'BUILD_RUNS_PAGE_LIMIT',
    'BUILD_ACTIONS_PAGE_LIMIT',
    'ARTIFACTS_PAGE_LIMIT',
]
