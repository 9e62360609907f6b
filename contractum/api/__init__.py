"""Host application layer: FastAPI app, middleware and error responses."""
