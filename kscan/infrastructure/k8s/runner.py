"""Kubernetes job runner."""

import logging
from collections.abc import Sequence
from typing import Any

import logfire
from kubernetes import client

from kscan.domain.shared.error import (
    ConflictError,
    KscanError,
    SecretOwnershipError,
    TaskAlreadyExistsError,
    TaskCreationError,
    TaskFailedError,
)
from kscan.domain.task.model.value import JobConditionType, Secret, SecretState, Task
from kscan.domain.task.port.task_runner import TaskRunner
from kscan.infrastructure.k8s.api import call
from kscan.infrastructure.k8s.watch import JobWatcher, Subscription

logger = logging.getLogger(__name__)


def owner_reference_to_job(job: dict[str, Any]) -> dict[str, Any]:
    """Non-controller owner reference; deleting the job garbage-collects the dependent."""
    metadata = job["metadata"]
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "name": metadata["name"],
        "uid": metadata["uid"],
    }


def set_owner_reference(obj: dict[str, Any], owner_ref: dict[str, Any]) -> None:
    refs = obj.setdefault("metadata", {}).get("ownerReferences") or []
    refs = [r for r in refs if r.get("uid") != owner_ref["uid"]]
    refs.append(owner_ref)
    obj["metadata"]["ownerReferences"] = refs


class KubeTaskRunner(TaskRunner):
    """Runs tasks as Kubernetes jobs and waits for them via a job watch.

    Every ``run`` call owns its own subscription; runners share no mutable state.
    """

    def __init__(
        self,
        core: client.CoreV1Api,
        batch: client.BatchV1Api,
        watcher: JobWatcher,
        request_timeout: float | None = None,
    ):
        self._core = core
        self._batch = batch
        self._watcher = watcher
        self._timeout = request_timeout

    async def run(self, task: Task, secrets: Sequence[Secret] = ()) -> None:
        states = {secret.name: SecretState.PENDING for secret in secrets}
        created: list[dict[str, Any]] = []

        for secret in secrets:
            logger.debug("Creating secret %s/%s", task.namespace, secret.name)
            try:
                created.append(
                    await call(
                        self._core.create_namespaced_secret,
                        task.namespace,
                        secret.to_manifest(task),
                        action=f"creating secret {secret.name}",
                        timeout=self._timeout,
                    )
                )
            except KscanError as e:
                raise TaskCreationError(f"creating secret: {e.message}") from e
            states[secret.name] = SecretState.CREATED

        logger.debug("Creating job %s/%s", task.namespace, task.name)
        try:
            job = await call(
                self._batch.create_namespaced_job,
                task.namespace,
                task.to_manifest(),
                action=f"creating job {task.name}",
                timeout=self._timeout,
            )
        except ConflictError as e:
            raise TaskAlreadyExistsError(f"creating job: {e.message}") from e
        except KscanError as e:
            raise TaskCreationError(f"creating job: {e.message}") from e
        logfire.info("Scan job created", job=task.name, namespace=task.namespace)

        await self._own_secrets(job, created, states)

        async with self._watcher.subscribe(task.namespace, task.name) as subscription:
            await self._wait_for_completion(subscription, job["metadata"]["uid"], task)

    async def _own_secrets(
        self,
        job: dict[str, Any],
        secrets: list[dict[str, Any]],
        states: dict[str, SecretState],
    ) -> None:
        owner_ref = owner_reference_to_job(job)
        namespace = job["metadata"]["namespace"]
        for secret in secrets:
            name = secret["metadata"]["name"]
            set_owner_reference(secret, owner_ref)
            logger.debug("Setting owner reference secret %s -> job %s", name, owner_ref["name"])
            try:
                await call(
                    self._core.replace_namespaced_secret,
                    name,
                    namespace,
                    secret,
                    action=f"updating secret {name}",
                    timeout=self._timeout,
                )
            except KscanError as e:
                unowned = [n for n, s in states.items() if s == SecretState.CREATED]
                logfire.error(
                    "Secret ownership update failed",
                    job=owner_ref["name"],
                    unowned=unowned,
                    error=e.message,
                )
                raise SecretOwnershipError(f"updating secret: {e.message}", unowned=unowned) from e
            states[name] = SecretState.OWNED

    async def _wait_for_completion(
        self, subscription: Subscription, uid: str, task: Task
    ) -> None:
        while True:
            event = await subscription.next()
            if event.type == "DELETED":
                continue
            job = event.job
            if (job.get("metadata") or {}).get("uid") != uid:
                continue
            conditions = (job.get("status") or {}).get("conditions") or []
            if not conditions:
                continue
            # Only the first condition decides; later ones are not inspected.
            condition = conditions[0]
            match condition.get("type"):
                case JobConditionType.COMPLETE:
                    logfire.info("Scan job completed", job=task.name, namespace=task.namespace)
                    return
                case JobConditionType.FAILED:
                    logfire.info("Scan job failed", job=task.name, namespace=task.namespace)
                    raise TaskFailedError(
                        condition.get("reason", ""), condition.get("message", "")
                    )

    async def delete(self, task: Task) -> None:
        logger.debug("Deleting job %s/%s", task.namespace, task.name)
        await call(
            self._batch.delete_namespaced_job,
            task.name,
            task.namespace,
            propagation_policy="Background",
            action=f"deleting job {task.name}",
            timeout=self._timeout,
        )
