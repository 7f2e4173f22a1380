from abc import abstractmethod
from typing import Protocol, runtime_checkable

from kscan.domain.task.model.value import Task


@runtime_checkable
class LogStream(Protocol):
    """Readable, closable byte stream of one container's output."""

    def read(self, amt: int | None = None) -> bytes: ...

    def close(self) -> None: ...


@runtime_checkable
class LogsReader(Protocol):
    """Retrieve container output of a finished task."""

    @abstractmethod
    async def get_logs(self, task: Task, container: str) -> LogStream:
        """Open the log stream of ``container`` in the task's pod.

        The caller owns the stream and must close it.
        """
        ...
