"""Core infrastructure package for shared functionality.

- **config**: Centralized configuration management with environment support
- **context**: Correlation ID management
- **exceptions**: Error taxonomy of the request pipeline
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Structured logging with Loguru
- **observability**: Distributed tracing with OpenTelemetry
- **types**: Type aliases for handler signatures and dynamic data
"""
