"""Run squad builds off the request thread, keeping only the newest result."""

import logging
import threading

from fpl_advisor.models import SquadBuildResult
from fpl_advisor.squad_builder import build_squad

logger = logging.getLogger(__name__)


class SquadBuilderWorker:
    """Background squad builder with last-request-wins semantics.

    Every ``submit`` supersedes the previous request. A superseded build is
    not interrupted, but its result is dropped when it finishes and its
    callbacks never fire.
    """

    def __init__(self, build_fn=build_squad):
        self._build_fn = build_fn
        self._lock = threading.Lock()
        self._latest_request = 0
        self._result: tuple[int, SquadBuildResult] | None = None
        self._error: tuple[int, Exception] | None = None
        self._threads: list[threading.Thread] = []

    def submit(self, on_result=None, on_error=None, **params) -> int:
        """Start a build with ``build_squad`` keyword arguments; returns its request id."""
        with self._lock:
            self._latest_request += 1
            request_id = self._latest_request
            self._threads = [t for t in self._threads if t.is_alive()]
            t = threading.Thread(
                target=self._run,
                args=(request_id, params, on_result, on_error),
                daemon=True,
            )
            self._threads.append(t)
        t.start()
        return request_id

    def _run(self, request_id: int, params: dict, on_result, on_error):
        try:
            result = self._build_fn(**params)
        except Exception as exc:
            logger.exception("Squad build %d failed", request_id)
            with self._lock:
                if request_id != self._latest_request:
                    return
                self._error = (request_id, exc)
            if on_error is not None:
                on_error(exc)
            return

        with self._lock:
            if request_id != self._latest_request:
                logger.debug("Discarding stale squad build %d (latest is %d)",
                             request_id, self._latest_request)
                return
            self._result = (request_id, result)
            self._error = None
        if on_result is not None:
            on_result(result)

    @property
    def latest_request(self) -> int:
        with self._lock:
            return self._latest_request

    def latest(self) -> tuple[int, SquadBuildResult] | None:
        """The newest completed result as ``(request_id, result)``, if any."""
        with self._lock:
            return self._result

    def last_error(self) -> tuple[int, Exception] | None:
        with self._lock:
            return self._error

    def is_pending(self) -> bool:
        """True while the newest request has neither a result nor an error."""
        with self._lock:
            done = {rid for rid, _ in filter(None, (self._result, self._error))}
            return self._latest_request > 0 and self._latest_request not in done

    def join(self, timeout: float | None = None) -> None:
        """Wait for running builds (mainly for tests and shutdown)."""
        with self._lock:
            threads = list(self._threads)
        for t in threads:
            t.join(timeout)
