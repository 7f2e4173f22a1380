"""Port for resolving workloads from partial references."""

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable

from kscan.domain.workload.model.value import ObjectRef


@runtime_checkable
class ObjectResolver(Protocol):
    """Look up cluster objects by kind/namespace/name."""

    @abstractmethod
    async def get_object(self, ref: ObjectRef) -> dict[str, Any]:
        """Return the full object, including ``kind`` and ``apiVersion``.

        Raises:
            NotFoundError: If the object does not exist.
            ValidationError: If the kind is not supported.
        """
        ...

    @abstractmethod
    async def get_related_replicaset_name(self, ref: ObjectRef) -> str:
        """Name of the replica set currently managed by a Deployment or owning a Pod."""
        ...
