from __future__ import annotations

from collections.abc import Callable, Generator
from concurrent.futures import Future
from typing import Any
import asyncio
import threading

from promised_request.domain.errors import RequestFailure
from promised_request.domain.model import RequestSuccess

PENDING = "pending"
SUCCEEDED = "succeeded"
FAILED = "failed"


class CompletionSignal:
    """One-shot result channel between a transport and the caller.

    The first resolve()/reject() wins; later calls return False and change
    nothing. result() blocks until settled, then returns the RequestSuccess
    or raises the RequestFailure. The signal can also be awaited from a
    running event loop.
    """

    def __init__(self) -> None:
        self._future: Future[RequestSuccess] = Future()
        self._lock = threading.Lock()
        self._state = PENDING

    @property
    def state(self) -> str:
        return self._state

    def done(self) -> bool:
        return self._state != PENDING

    def resolve(self, data: Any, text: str) -> bool:
        with self._lock:
            if self._state != PENDING:
                return False
            self._state = SUCCEEDED
        self._future.set_result(RequestSuccess(data, text))
        return True

    def reject(self, failure: RequestFailure) -> bool:
        with self._lock:
            if self._state != PENDING:
                return False
            self._state = FAILED
        self._future.set_exception(failure)
        return True

    def cancel(self) -> bool:
        # Cancellation is not supported yet; the slot keeps the interface stable.
        return False

    def result(self, timeout: float | None = None) -> RequestSuccess:
        return self._future.result(timeout)

    def exception(self, timeout: float | None = None) -> RequestFailure | None:
        return self._future.exception(timeout)  # type: ignore[return-value]

    def add_done_callback(self, fn: Callable[["CompletionSignal"], Any]) -> None:
        self._future.add_done_callback(lambda _f: fn(self))

    def then(
        self,
        on_success: Callable[[RequestSuccess], Any],
        on_failure: Callable[[RequestFailure], Any] | None = None,
    ) -> "CompletionSignal":
        def _dispatch(signal: "CompletionSignal") -> None:
            failure = signal.exception()
            if failure is None:
                on_success(signal.result())
            elif on_failure is not None:
                on_failure(failure)

        self.add_done_callback(_dispatch)
        return self

    def __await__(self) -> Generator[Any, None, RequestSuccess]:
        return asyncio.wrap_future(self._future).__await__()

    def __repr__(self) -> str:
        return f"<CompletionSignal {self._state}>"
