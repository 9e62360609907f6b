"""API-related constants."""

# HTTP Status Codes
HTTP_400_BAD_REQUEST = 400
HTTP_401_UNAUTHORIZED = 401
HTTP_403_FORBIDDEN = 403
HTTP_404_NOT_FOUND = 404
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"

# CORS defaults applied to every response
DEFAULT_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-API-Key",
}

# Fixed client-facing messages used when error details are hidden
TERSE_MESSAGES = {
    HTTP_401_UNAUTHORIZED: "Unauthorized",
    HTTP_403_FORBIDDEN: "Forbidden",
    HTTP_404_NOT_FOUND: "Not found",
}
TERSE_CLIENT_ERROR_MESSAGE = "Bad request"
TERSE_SERVER_ERROR_MESSAGE = "Internal server error"
