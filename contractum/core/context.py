"""Per-request correlation id, shared by logs, spans and error bodies."""

import uuid
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class CorrelationContext:
    """Correlation id of the request being served in the current task."""

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Return the current id, or None outside a request."""
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        _correlation_id_var.set(None)


def generate_correlation_id() -> str:
    """Return a fresh UUID4 string."""
    return str(uuid.uuid4())
