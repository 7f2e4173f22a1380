"""Port for executing tasks in the cluster."""

from abc import abstractmethod
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from kscan.domain.task.model.value import Secret, Task


@runtime_checkable
class TaskRunner(Protocol):
    """Submit tasks and block until they finish."""

    @abstractmethod
    async def run(self, task: Task, secrets: Sequence[Secret] = ()) -> None:
        """Create the secrets and the task, then wait for a terminal condition.

        Secrets are created first (unowned) and handed over to the task once it
        exists, so deleting the task cascades to them.

        Raises:
            TaskCreationError: A secret or the task could not be created.
            TaskAlreadyExistsError: A task with the same name is still present.
            SecretOwnershipError: The task exists but some secrets stayed unowned.
            TaskFailedError: The task's first condition reported failure.
            ExternalServiceError: The event stream broke while waiting.
        """
        ...

    @abstractmethod
    async def delete(self, task: Task) -> None:
        """Delete the task with background propagation."""
        ...
