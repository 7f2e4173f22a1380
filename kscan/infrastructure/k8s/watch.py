"""Job event subscription backed by kubernetes.watch."""

import asyncio
import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, Self

from kubernetes import client, watch

from kscan.domain.shared.error import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobEvent:
    type: str  # ADDED, MODIFIED, DELETED
    job: dict[str, Any]


class Subscription(Protocol):
    """Cancellable stream of job events; closed on every exit path."""

    async def __aenter__(self) -> Self: ...

    async def __aexit__(self, *exc: object) -> None: ...

    async def next(self) -> JobEvent: ...


class JobWatcher(Protocol):
    def subscribe(self, namespace: str, name: str) -> Subscription: ...


class JobSubscription:
    """Namespace-scoped watch on jobs named ``name``.

    A daemon thread pumps ``Watch.stream`` in windows of ``resync_seconds``.
    Each new window starts with a fresh list, so every live job is re-delivered
    at least once per window even if an event was missed.
    """

    def __init__(
        self,
        batch: client.BatchV1Api,
        namespace: str,
        name: str,
        resync_seconds: int = 300,
    ) -> None:
        self._batch = batch
        self._namespace = namespace
        self._name = name
        self._resync_seconds = resync_seconds
        self._queue: asyncio.Queue[JobEvent | BaseException] = asyncio.Queue()
        self._stopped = threading.Event()
        self._watch: watch.Watch | None = None
        self._response: Any = None
        self._thread: threading.Thread | None = None

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._thread = threading.Thread(
            target=self._pump,
            args=(loop,),
            name=f"watch-job-{self._namespace}-{self._name}",
            daemon=True,
        )
        self._thread.start()

    def _pump(self, loop: asyncio.AbstractEventLoop) -> None:
        while not self._stopped.is_set():
            self._watch = watch.Watch()
            try:
                for event in self._watch.stream(
                    self._list_jobs(),
                    namespace=self._namespace,
                    field_selector=f"metadata.name={self._name}",
                    timeout_seconds=self._resync_seconds,
                ):
                    if self._stopped.is_set():
                        return
                    self._publish(loop, JobEvent(type=event["type"], job=event["raw_object"]))
            except Exception as e:
                # Forwarded to the consumer, which decides how to fail.
                self._publish(loop, e)
                return

    def _list_jobs(self) -> Callable[..., Any]:
        """Wrap the list call so the streaming response stays reachable from ``close``."""
        list_jobs = self._batch.list_namespaced_job

        @functools.wraps(list_jobs)
        def list_and_keep_response(*args: Any, **kwargs: Any) -> Any:
            self._response = list_jobs(*args, **kwargs)
            return self._response

        return list_and_keep_response

    def _publish(self, loop: asyncio.AbstractEventLoop, item: JobEvent | BaseException) -> None:
        if self._stopped.is_set():
            return
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Event loop already closed; nobody is listening any more.
            self._stopped.set()

    async def next(self) -> JobEvent:
        item = await self._queue.get()
        if isinstance(item, BaseException):
            raise ExternalServiceError(f"watching job {self._name}: {item}") from item
        return item

    def close(self) -> None:
        """Stop the watch and drop undelivered events."""
        self._stopped.set()
        if self._watch is not None:
            self._watch.stop()
        if self._response is not None:
            # Stop only sets a flag; shutting the socket down wakes a blocked read.
            try:
                self._response.shutdown()
            except OSError as e:
                logger.debug("Watch response already closed: %s", e)
        while not self._queue.empty():
            self._queue.get_nowait()
        logger.debug("Closed job subscription %s/%s", self._namespace, self._name)


class KubeJobWatcher:
    def __init__(self, batch: client.BatchV1Api, resync_seconds: int = 300) -> None:
        self._batch = batch
        self._resync_seconds = resync_seconds

    def subscribe(self, namespace: str, name: str) -> JobSubscription:
        return JobSubscription(self._batch, namespace, name, self._resync_seconds)
