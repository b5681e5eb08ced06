"""HTTP surface: FastAPI routes, request dependencies and error handlers."""
