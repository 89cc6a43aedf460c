from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from aiquiz.quiz.errors import SessionNotFoundError
from aiquiz.quiz.session import QuizSessionController

logger = structlog.get_logger(__name__)


class QuizSessionRegistry:
    """Owns the live controller of every browser session.

    Replacing, discarding or pruning a controller always closes it, so no timer
    of a torn-down session keeps running. Controllers untouched for longer than
    ``idle_ttl_seconds`` are pruned on the next lookup or install.
    """

    def __init__(
        self,
        *,
        idle_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._controllers: dict[str, QuizSessionController] = {}
        self._last_seen: dict[str, float] = {}
        self._idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._controllers)

    def get(self, browser_session_id: str) -> QuizSessionController | None:
        self.prune()
        controller = self._controllers.get(browser_session_id)
        if controller is not None:
            self._last_seen[browser_session_id] = self._clock()
        return controller

    def require(self, browser_session_id: str) -> QuizSessionController:
        controller = self.get(browser_session_id)
        if controller is None:
            raise SessionNotFoundError
        return controller

    def install(self, browser_session_id: str, controller: QuizSessionController) -> None:
        self.prune()
        previous = self._controllers.pop(browser_session_id, None)
        if previous is not None and previous is not controller:
            previous.close()
            logger.info("quiz_session_replaced", browser_session_id=browser_session_id)
        self._controllers[browser_session_id] = controller
        self._last_seen[browser_session_id] = self._clock()

    def discard(self, browser_session_id: str, *, reason: str = "abandoned") -> bool:
        controller = self._controllers.pop(browser_session_id, None)
        self._last_seen.pop(browser_session_id, None)
        if controller is None:
            return False
        controller.close()
        logger.info("quiz_session_discarded", browser_session_id=browser_session_id, reason=reason)
        return True

    def prune(self) -> int:
        if self._idle_ttl_seconds is None:
            return 0
        cutoff = self._clock() - self._idle_ttl_seconds
        expired = [sid for sid, seen_at in self._last_seen.items() if seen_at <= cutoff]
        for browser_session_id in expired:
            self._last_seen.pop(browser_session_id, None)
            controller = self._controllers.pop(browser_session_id, None)
            if controller is not None:
                controller.close()
        if expired:
            logger.info("quiz_sessions_pruned", count=len(expired))
        return len(expired)

    def close_all(self) -> None:
        controllers, self._controllers = list(self._controllers.values()), {}
        self._last_seen = {}
        for controller in controllers:
            controller.close()
