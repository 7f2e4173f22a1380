from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SecretsReader(Protocol):
    """Discover image pull secrets available to a pod."""

    @abstractmethod
    async def list_image_pull_secrets(
        self, pod_spec: dict[str, Any], namespace: str
    ) -> list[dict[str, Any]]:
        """Secrets named by the pod spec and by its service account."""
        ...
