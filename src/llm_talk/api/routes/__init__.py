"""API route modules."""

from llm_talk.api.routes.health import router as health_router
from llm_talk.api.routes.providers import router as providers_router
from llm_talk.api.routes.session import router as session_router


__all__ = [
    "health_router",
    "providers_router",
    "session_router",
]
