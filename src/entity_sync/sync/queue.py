"""Ordered write-behind task queue.

One queue is shared by every persistence layer in the process.  Tasks
run strictly one at a time in push order, whatever collection they
target.  ``push`` never waits for the store: it appends and, when no
worker is active, starts one on the running event loop.

At most one drain worker exists at any time.  It is tracked by its
``asyncio.Task`` handle, not inferred from queue length.

Failure handling is a policy:

* ``FailurePolicy.HALT`` (default) -- the worker stops at the failing
  task.  Tasks queued after it stay queued and never run until
  :meth:`TaskQueue.resume` is called.
* ``FailurePolicy.CONTINUE`` -- the failure is recorded and draining
  continues with the next task.

Either way every failure is logged, counted, kept as a
:class:`DeadLetter`, and passed to the optional ``on_task_error``
callback.  Failed tasks are never retried.

:meth:`TaskQueue.stop` cancels the worker.  A task cancelled mid-write
goes back to the head of the queue, so nothing pending is lost; it runs
again once :meth:`TaskQueue.resume` is called.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from entity_sync.core.enums import FailurePolicy
from entity_sync.core.errors import QueueHaltedError, QueueStoppedError, SyncError
from entity_sync.observability import metrics

from .tasks import Task

logger = logging.getLogger(__name__)


@dataclass
class DeadLetter:
    """Record of a task that raised."""

    task_id: str
    kind: str
    collection: str
    key: Any
    error: str
    timestamp: float = field(default_factory=time.monotonic)


class TaskQueue:
    """Process-wide FIFO of persistence tasks with a single drain worker.

    Parameters
    ----------
    failure_policy:
        What to do after a task raises.  See module docstring.
    on_task_error:
        Optional callback ``(task, exc)`` invoked for every failure.
        Exceptions raised by the callback are logged and ignored.
    name:
        Used for the worker task name and metric labels.
    """

    def __init__(
        self,
        *,
        failure_policy: FailurePolicy = FailurePolicy.HALT,
        on_task_error: Callable[[Task, Exception], None] | None = None,
        name: str = "entity-sync-queue",
    ) -> None:
        self._failure_policy = failure_policy
        self._on_task_error = on_task_error
        self._name = name

        self._pending: deque[Task] = deque()
        self._worker: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._halted = False
        self._stopped = False
        self._last_error: Exception | None = None

        # Counters
        self._tasks_enqueued: int = 0
        self._tasks_executed: int = 0
        self._tasks_failed: int = 0
        self._dead_letters: list[DeadLetter] = []

    # -- producer side ------------------------------------------------------

    def push(self, task: Task) -> None:
        """Append *task* and make sure a worker is draining.

        Must be called from code running inside an event loop.

        Raises:
            SyncError: if a worker is needed and there is no running event
                loop.  The task is not queued in that case.
        """
        loop = None
        if not (self._halted or self._stopped) and self._worker is None:
            loop = self._running_loop()

        self._pending.append(task)
        self._tasks_enqueued += 1
        metrics.record_enqueued(task.collection_name, task.kind.value)
        metrics.update_queue_depth(self._name, len(self._pending))

        if self._halted:
            logger.warning(
                "Queue %s is halted; %r queued behind %d task(s)",
                self._name, task, len(self._pending) - 1,
            )
            return
        if self._stopped:
            logger.debug("Queue %s is stopped; %r queued", self._name, task)
            return
        if loop is not None:
            self._start_worker(loop)

    def _running_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SyncError(
                f"TaskQueue {self._name!r} needs a running event loop to drain"
            ) from exc

    def _start_worker(self, loop: asyncio.AbstractEventLoop) -> None:
        self._idle.clear()
        self._worker = loop.create_task(self._drain(), name=self._name)

    # -- consumer side ------------------------------------------------------

    async def _drain(self) -> None:
        try:
            while self._pending:
                task = self._pending.popleft()
                metrics.update_queue_depth(self._name, len(self._pending))
                started = time.perf_counter()
                try:
                    await task.run()
                except asyncio.CancelledError:
                    self._pending.appendleft(task)
                    metrics.update_queue_depth(self._name, len(self._pending))
                    raise
                except Exception as exc:
                    self._record_failure(task, exc)
                    if self._failure_policy is FailurePolicy.HALT:
                        self._halted = True
                        logger.error(
                            "Queue %s halted after %r failed; %d task(s) left undrained",
                            self._name, task, len(self._pending),
                        )
                        return
                else:
                    self._tasks_executed += 1
                    metrics.record_executed(
                        task.collection_name,
                        task.kind.value,
                        time.perf_counter() - started,
                    )
        finally:
            self._worker = None
            self._idle.set()

    def _record_failure(self, task: Task, exc: Exception) -> None:
        self._tasks_failed += 1
        self._last_error = exc
        metrics.record_failure(task.collection_name, task.kind.value)
        self._dead_letters.append(
            DeadLetter(
                task_id=task.task_id,
                kind=task.kind.value,
                collection=task.collection_name,
                key=task.key,
                error=str(exc),
            )
        )
        logger.exception("Persistence task %r failed", task)

        if self._on_task_error is not None:
            try:
                self._on_task_error(task, exc)
            except Exception:
                logger.warning("on_task_error callback failed", exc_info=True)

    # -- control ------------------------------------------------------------

    async def join(self) -> None:
        """Wait until the worker has nothing left to run.

        Raises:
            QueueHaltedError: if draining stopped on a failed task.
            QueueStoppedError: if the queue was stopped with tasks pending.
        """
        await self._idle.wait()
        if self._halted:
            raise QueueHaltedError(len(self._pending), self._last_error)
        if self._stopped and self._pending:
            raise QueueStoppedError(len(self._pending))

    def resume(self) -> None:
        """Clear a halt or stop and restart draining of the remaining tasks."""
        if not (self._halted or self._stopped):
            return
        loop = self._running_loop() if self._pending and self._worker is None else None
        self._halted = False
        self._stopped = False
        logger.info("Queue %s resumed with %d pending task(s)", self._name, len(self._pending))
        if loop is not None:
            self._start_worker(loop)

    async def stop(self) -> None:
        """Cancel the worker.  Pending tasks, including one cancelled
        mid-write, stay queued until :meth:`resume`.
        """
        self._stopped = True
        worker = self._worker
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            self._worker = None
            self._idle.set()
        logger.info(
            "Queue %s stopped (executed=%d, failed=%d, pending=%d)",
            self._name, self._tasks_executed, self._tasks_failed, len(self._pending),
        )

    # -- observability ------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._worker is not None

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def tasks_enqueued(self) -> int:
        return self._tasks_enqueued

    @property
    def tasks_executed(self) -> int:
        return self._tasks_executed

    @property
    def tasks_failed(self) -> int:
        return self._tasks_failed

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    def clear_dead_letters(self) -> list[DeadLetter]:
        """Drain the dead-letter list and return all entries."""
        drained = self._dead_letters[:]
        self._dead_letters.clear()
        return drained

    def get_metrics(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "pending": len(self._pending),
            "draining": self.is_draining,
            "halted": self._halted,
            "stopped": self._stopped,
            "enqueued": self._tasks_enqueued,
            "executed": self._tasks_executed,
            "failed": self._tasks_failed,
            "dead_letters": len(self._dead_letters),
        }
