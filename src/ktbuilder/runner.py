"""Deadline-bounded execution of a single task on a dedicated worker thread.

The caller's thread waits on a future with a timeout. On expiry it fires the
task's cancellation token and raises ``DeadlineExceededError`` right away,
without joining the worker. Anything the worker writes afterwards is
untrusted and never reported as a result.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import TypeVar

from ktbuilder.errors import CancelledError, DeadlineExceededError, InvalidCommandError
from ktbuilder.observability import StructuredLogger

T = TypeVar("T")


@dataclass(slots=True)
class CancellationToken:
    """Cooperative cancellation signal shared between supervisor and worker."""

    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to *timeout* seconds; return True if cancellation fired."""
        return self._event.wait(timeout)


@dataclass(slots=True)
class TimeBoundedRunner:
    logger: StructuredLogger | None = None
    label: str | None = None
    thread_name_prefix: str = "ktbuilder-worker"

    def run_with_deadline(
        self,
        task: Callable[[CancellationToken], T],
        budget_seconds: float,
        *,
        token: CancellationToken | None = None,
    ) -> T:
        if not math.isfinite(budget_seconds) or budget_seconds <= 0:
            raise InvalidCommandError(
                "Deadline budget must be positive and finite.",
                context={"budget_seconds": str(budget_seconds)},
            )

        token = token or CancellationToken()
        future: Future[T] = Future()
        future.set_running_or_notify_cancel()

        def _worker() -> None:
            try:
                result = task(token)
            except BaseException as exc:  # handed to the caller through the future
                future.set_exception(exc)
            else:
                future.set_result(result)

        worker = threading.Thread(
            target=_worker,
            name=f"{self.thread_name_prefix}-{self.label or 'task'}",
            daemon=True,
        )
        started = time.monotonic()
        self._log("runner.start", f"Running task with {budget_seconds:g}s budget.")
        worker.start()

        try:
            result = future.result(timeout=budget_seconds)
        except FutureTimeoutError:
            token.cancel()
            self._log(
                "runner.deadline",
                "Task exceeded its deadline; cancellation signalled.",
                level="error",
                extra={"budget_seconds": budget_seconds},
            )
            raise DeadlineExceededError(
                f"Task did not complete in {budget_seconds:g}s.",
                budget_seconds=budget_seconds,
                hint="Treat any artifacts as untrusted; retry with a larger budget.",
                context={"target": self.label or ""},
            ) from None

        self._log(
            "runner.done",
            "Task completed before its deadline.",
            extra={"elapsed_seconds": round(time.monotonic() - started, 3)},
        )
        return result

    def _log(
        self,
        operation: str,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        if self.logger is None:
            return
        self.logger.log(
            operation=operation,
            target=self.label,
            phase="run",
            toolchain=None,
            message=message,
            level=level,
            extra=extra,
        )
