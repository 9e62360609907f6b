"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# HTTP methods an OpenAPI path item may declare
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Media types understood by the body parser, in order of preference
JSON_MEDIA_TYPE = "application/json"
MULTIPART_MEDIA_TYPE = "multipart/form-data"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
BODY_MEDIA_TYPES = (JSON_MEDIA_TYPE, MULTIPART_MEDIA_TYPE, FORM_MEDIA_TYPE)
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

# Statuses that never carry a body
BODYLESS_STATUSES = frozenset({"204", "304"})
