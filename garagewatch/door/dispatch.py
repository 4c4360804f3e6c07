# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Single-consumer work queue for door state mutations.

Sensor edges arrive on the GPIO driver thread, alert ticks on timer
threads and operator actions on the main thread.  All of them are
posted to one ``SerialDispatcher`` whose worker thread is the only code
that ever touches the state machine, so no two transitions run at the
same time and the machine needs no locks of its own.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any


logger = logging.getLogger(__name__)

_STOP = object()


class DispatcherStoppedError(RuntimeError):
    """Raised when work is submitted to a stopped dispatcher."""


class SerialDispatcher:
    """Runs posted callables one at a time on a dedicated worker thread."""

    def __init__(self, name: str = "DoorDispatcher") -> None:
        self._name = name
        self._queue: queue.Queue[Any] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._accepting = False

    @property
    def is_running(self) -> bool:
        """Whether the worker thread is alive and accepting work."""
        return self._accepting

    def start(self) -> None:
        """Start the worker thread.  No-op if already started."""
        with self._lock:
            if self._thread is not None:
                return
            self._accepting = True
            self._thread = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name=self._name,
            )
            self._thread.start()
        logger.debug("Dispatcher %s started", self._name)

    def post(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """Queue ``fn(*args)`` for execution on the worker thread.

        Safe to call from any thread, including the worker itself.

        Returns:
            Future resolved with the call's result or exception.

        Raises:
            DispatcherStoppedError: If the dispatcher is not running.
        """
        future: Future[Any] = Future()
        with self._lock:
            if not self._accepting:
                raise DispatcherStoppedError(
                    f"Dispatcher {self._name} is not running"
                )
            self._queue.put((fn, args, future))
        return future

    def call(
        self, fn: Callable[..., Any], *args: Any, timeout: float | None = None
    ) -> Any:
        """Run ``fn(*args)`` on the worker thread and wait for the result.

        Must not be called from the worker thread itself.
        """
        if threading.current_thread() is self._thread:
            raise RuntimeError(
                "call() from the dispatcher thread would deadlock"
            )
        return self.post(fn, *args).result(timeout=timeout)

    def stop(self, timeout: float = 10.0) -> None:
        """Stop accepting work, drain the queue and join the worker."""
        with self._lock:
            if not self._accepting:
                return
            self._accepting = False
            self._queue.put(_STOP)
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    "Dispatcher %s did not stop within %.0fs",
                    self._name,
                    timeout,
                )
        logger.debug("Dispatcher %s stopped", self._name)

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            fn, args, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except Exception as e:
                logger.exception("Error in dispatched task %r: %s", fn, e)
                future.set_exception(e)
            else:
                future.set_result(result)
