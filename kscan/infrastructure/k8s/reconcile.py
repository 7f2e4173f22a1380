"""Reconciliation of task secrets whose ownership was never established."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from kubernetes import client

from kscan.domain.shared.error import NotFoundError
from kscan.domain.task.model.value import LABEL_MANAGED_BY, LABEL_TASK_NAME, MANAGED_BY
from kscan.infrastructure.k8s.api import call
from kscan.infrastructure.k8s.runner import owner_reference_to_job, set_owner_reference

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    adopted: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


def _created_at(secret: dict[str, Any]) -> datetime | None:
    value = (secret.get("metadata") or {}).get("creationTimestamp")
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class SecretReconciler:
    """Finds tracked secrets left without an owner reference.

    A secret is left unowned when its job could not be created, or when the
    ownership update failed after the job was created. Secrets whose job still
    exists are adopted by it; the rest are deleted. Recently created secrets are
    skipped because their run may still be between the two phases.
    """

    def __init__(
        self,
        core: client.CoreV1Api,
        batch: client.BatchV1Api,
        grace_period: timedelta = timedelta(minutes=5),
        request_timeout: float | None = None,
    ):
        self._core = core
        self._batch = batch
        self._grace_period = grace_period
        self._timeout = request_timeout

    async def reconcile(self, namespace: str, now: datetime | None = None) -> ReconcileResult:
        now = now or datetime.now(UTC)
        result = ReconcileResult()
        secrets = await call(
            self._core.list_namespaced_secret,
            namespace,
            label_selector=f"{LABEL_MANAGED_BY}={MANAGED_BY},{LABEL_TASK_NAME}",
            action="listing task secrets",
            timeout=self._timeout,
        )
        for secret in secrets.get("items") or []:
            metadata = secret.get("metadata") or {}
            if metadata.get("ownerReferences"):
                continue
            created_at = _created_at(secret)
            if created_at is not None and now - created_at < self._grace_period:
                continue

            name = metadata["name"]
            job_name = (metadata.get("labels") or {})[LABEL_TASK_NAME]
            try:
                job = await call(
                    self._batch.read_namespaced_job,
                    job_name,
                    namespace,
                    action=f"getting job {job_name}",
                    timeout=self._timeout,
                )
            except NotFoundError:
                await call(
                    self._core.delete_namespaced_secret,
                    name,
                    namespace,
                    action=f"deleting secret {name}",
                    timeout=self._timeout,
                )
                logger.info("Deleted orphaned secret %s/%s", namespace, name)
                result.deleted.append(name)
                continue

            set_owner_reference(secret, owner_reference_to_job(job))
            await call(
                self._core.replace_namespaced_secret,
                name,
                namespace,
                secret,
                action=f"updating secret {name}",
                timeout=self._timeout,
            )
            logger.info("Secret %s/%s adopted by job %s", namespace, name, job_name)
            result.adopted.append(name)
        return result
