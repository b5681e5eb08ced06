"""Request dependencies: the orchestrator pool and shared services.

The pool keeps one SessionOrchestrator per session id so the busy flag
holds across HTTP requests inside one process. Sessions missing from
the pool are loaded from the store on demand. Orchestrators whose session has
finished are evicted, so only running sessions stay resident.
"""

from __future__ import annotations

import asyncio

from fastapi import Request

from llm_talk.conversation.orchestrator import SessionOrchestrator
from llm_talk.conversation.models import SessionStatus
from llm_talk.core.config import Settings
from llm_talk.core.logging import get_logger
from llm_talk.persistence.protocols import ChangeFeed, SessionStore
from llm_talk.providers.registry import ProviderRegistry


logger = get_logger(__name__)


class OrchestratorPool:
    """In-process registry of live orchestrators keyed by session id."""

    def __init__(
        self,
        registry: ProviderRegistry,
        store: SessionStore,
        settings: Settings,
    ) -> None:
        self.registry = registry
        self.store = store
        self.settings = settings
        self._orchestrators: dict[str, SessionOrchestrator] = {}
        self._load_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._orchestrators)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._orchestrators

    def create(self) -> SessionOrchestrator:
        """New orchestrator with no session; call register() after start()."""
        return SessionOrchestrator(self.registry, self.store, self.settings)

    def register(self, orchestrator: SessionOrchestrator) -> None:
        if orchestrator.session_id is None:
            raise ValueError("Cannot register an orchestrator without a session")
        self._orchestrators[orchestrator.session_id] = orchestrator

    def release(self, orchestrator: SessionOrchestrator) -> bool:
        """Drop a finished orchestrator from the pool.

        Terminal sessions take no further turns, so their history and
        pattern registry need not stay in memory; later reads reload them
        from the store. Returns True when the orchestrator was evicted.
        """
        session_id = orchestrator.session_id
        if session_id is None or not orchestrator.status.is_terminal or orchestrator.is_processing:
            return False
        if self._orchestrators.get(session_id) is not orchestrator:
            return False
        del self._orchestrators[session_id]
        logger.debug("orchestrator_released", session_id=session_id, status=orchestrator.status.value)
        return True

    def live_count(self) -> int:
        return sum(
            1 for o in self._orchestrators.values() if o.status is SessionStatus.RUNNING
        )

    async def get(self, session_id: str) -> SessionOrchestrator:
        """Orchestrator for session_id, loading it from the store if needed.

        Raises:
            SessionNotFoundError: The store has no such session.
            PersistenceError: The store failed.
        """
        orchestrator = self._orchestrators.get(session_id)
        if orchestrator is not None:
            return orchestrator

        async with self._load_lock:
            orchestrator = self._orchestrators.get(session_id)
            if orchestrator is None:
                orchestrator = self.create()
                await orchestrator.load(session_id)
                # finished sessions are served from the store on every read
                if not orchestrator.status.is_terminal:
                    self._orchestrators[session_id] = orchestrator
                logger.info(
                    "orchestrator_loaded",
                    session_id=session_id,
                    status=orchestrator.status.value,
                )
        return orchestrator


def get_pool(request: Request) -> OrchestratorPool:
    return request.app.state.pool


def get_feed(request: Request) -> ChangeFeed:
    return request.app.state.feed


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = [
    "OrchestratorPool",
    "get_app_settings",
    "get_feed",
    "get_pool",
]
