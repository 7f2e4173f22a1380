import logging
from typing import Any

from kubernetes import client

from kscan.domain.shared.error import NotFoundError
from kscan.domain.workload.port.secrets import SecretsReader
from kscan.infrastructure.k8s.api import call

logger = logging.getLogger(__name__)


class KubeSecretsReader(SecretsReader):
    def __init__(self, core: client.CoreV1Api, request_timeout: float | None = None):
        self._core = core
        self._timeout = request_timeout

    async def list_image_pull_secrets(
        self, pod_spec: dict[str, Any], namespace: str
    ) -> list[dict[str, Any]]:
        names = [s["name"] for s in pod_spec.get("imagePullSecrets") or [] if s.get("name")]
        names.extend(await self._service_account_pull_secrets(pod_spec, namespace))

        secrets: list[dict[str, Any]] = []
        for name in dict.fromkeys(names):
            try:
                secrets.append(
                    await call(
                        self._core.read_namespaced_secret,
                        name,
                        namespace,
                        action=f"getting secret {name}",
                        timeout=self._timeout,
                    )
                )
            except NotFoundError:
                # Pods can reference pull secrets that were never created.
                logger.debug("Image pull secret %s/%s not found", namespace, name)
        return secrets

    async def _service_account_pull_secrets(
        self, pod_spec: dict[str, Any], namespace: str
    ) -> list[str]:
        sa_name = pod_spec.get("serviceAccountName") or "default"
        try:
            sa = await call(
                self._core.read_namespaced_service_account,
                sa_name,
                namespace,
                action=f"getting service account {sa_name}",
                timeout=self._timeout,
            )
        except NotFoundError:
            return []
        return [s["name"] for s in sa.get("imagePullSecrets") or [] if s.get("name")]
