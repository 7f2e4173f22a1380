"""Unit tests for KubeTaskRunner - job lifecycle, secret ownership and completion."""

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError, ReadTimeoutError

from kscan.domain.shared.error import (
    ExternalServiceError,
    SecretOwnershipError,
    TaskAlreadyExistsError,
    TaskCreationError,
    TaskFailedError,
)
from kscan.domain.task.model.value import Secret, Task
from kscan.infrastructure.k8s.runner import KubeTaskRunner
from kscan.infrastructure.k8s.watch import JobEvent

JOB_UID = "job-uid-1"


def _task() -> Task:
    return Task(
        name="scan-vulnerabilityreport-abc",
        namespace="kscan",
        pod_spec={"containers": [{"name": "app", "image": "aquasec/trivy:0.14.0"}]},
    )


def _job(uid: str = JOB_UID, conditions: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "metadata": {"name": "scan-vulnerabilityreport-abc", "namespace": "kscan", "uid": uid},
        "status": {"conditions": conditions} if conditions is not None else {},
    }


class FakeSubscription:
    """Delivers queued events, then blocks like a quiet watch."""

    def __init__(self, events: list[JobEvent | Exception]):
        self._events = list(events)
        self.closed = False

    async def __aenter__(self) -> "FakeSubscription":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    async def next(self) -> JobEvent:
        if not self._events:
            await asyncio.Event().wait()
        item = self._events.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeWatcher:
    def __init__(self, events: list[JobEvent | Exception]):
        self.subscription = FakeSubscription(events)
        self.subscribed: list[tuple[str, str]] = []

    def subscribe(self, namespace: str, name: str) -> FakeSubscription:
        self.subscribed.append((namespace, name))
        return self.subscription


def _echo_secret(namespace: str, body: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    return {**body, "metadata": {**body["metadata"], "uid": f"uid-{body['metadata']['name']}"}}


def _make_core() -> MagicMock:
    core = MagicMock()
    core.create_namespaced_secret.side_effect = _echo_secret
    core.replace_namespaced_secret.side_effect = lambda name, ns, body, **kw: body
    return core


def _make_batch() -> MagicMock:
    batch = MagicMock()
    batch.create_namespaced_job.return_value = _job()
    batch.delete_namespaced_job.return_value = {}
    return batch


def _make_runner(
    events: list[JobEvent | Exception],
    core: MagicMock | None = None,
    batch: MagicMock | None = None,
) -> tuple[KubeTaskRunner, FakeWatcher]:
    watcher = FakeWatcher(events)
    runner = KubeTaskRunner(
        core=core or _make_core(),
        batch=batch or _make_batch(),
        watcher=watcher,
        request_timeout=5,
    )
    return runner, watcher


def _modified(job: dict[str, Any]) -> JobEvent:
    return JobEvent(type="MODIFIED", job=job)


COMPLETE = [{"type": "Complete", "status": "True"}]
FAILED = [
    {
        "type": "Failed",
        "status": "True",
        "reason": "BackoffLimitExceeded",
        "message": "pod failed",
    }
]


class TestRunCompletion:
    @pytest.mark.asyncio
    async def test_complete_returns(self):
        runner, watcher = _make_runner([_modified(_job(conditions=COMPLETE))])

        await runner.run(_task())

        assert watcher.subscribed == [("kscan", "scan-vulnerabilityreport-abc")]
        assert watcher.subscription.closed

    @pytest.mark.asyncio
    async def test_failed_raises_reason_and_message_verbatim(self):
        runner, watcher = _make_runner([_modified(_job(conditions=FAILED))])

        with pytest.raises(TaskFailedError) as exc_info:
            await runner.run(_task())

        assert str(exc_info.value) == "job failed: BackoffLimitExceeded: pod failed"
        assert exc_info.value.reason == "BackoffLimitExceeded"
        assert exc_info.value.detail == "pod failed"
        assert watcher.subscription.closed

    @pytest.mark.asyncio
    async def test_ignores_events_of_other_jobs(self):
        """A job with the same name but another uid is a stale predecessor."""
        runner, _ = _make_runner(
            [
                _modified(_job(uid="old-uid", conditions=FAILED)),
                _modified(_job(conditions=COMPLETE)),
            ]
        )

        await runner.run(_task())

    @pytest.mark.asyncio
    async def test_waits_through_events_without_conditions(self):
        runner, _ = _make_runner(
            [
                JobEvent(type="ADDED", job=_job()),
                _modified(_job(conditions=[])),
                _modified(_job(conditions=COMPLETE)),
            ]
        )

        await runner.run(_task())

    @pytest.mark.asyncio
    async def test_ignores_deleted_events(self):
        runner, _ = _make_runner(
            [
                JobEvent(type="DELETED", job=_job(conditions=FAILED)),
                _modified(_job(conditions=COMPLETE)),
            ]
        )

        await runner.run(_task())

    @pytest.mark.asyncio
    async def test_only_first_condition_decides(self):
        runner, _ = _make_runner([_modified(_job(conditions=[*COMPLETE, *FAILED]))])

        await runner.run(_task())

    @pytest.mark.asyncio
    async def test_watch_error_is_propagated(self):
        runner, watcher = _make_runner([ExternalServiceError("watching job: connection reset")])

        with pytest.raises(ExternalServiceError):
            await runner.run(_task())
        assert watcher.subscription.closed

    @pytest.mark.asyncio
    async def test_cancellation_closes_subscription(self):
        runner, watcher = _make_runner([])

        run = asyncio.create_task(runner.run(_task()))
        while not watcher.subscribed:
            await asyncio.sleep(0.01)
        run.cancel()

        with pytest.raises(asyncio.CancelledError):
            await run
        assert watcher.subscription.closed


class TestRunCreation:
    @pytest.mark.asyncio
    async def test_creates_secrets_then_job_then_owns_secrets(self):
        core = _make_core()
        batch = _make_batch()
        runner, _ = _make_runner([_modified(_job(conditions=COMPLETE))], core=core, batch=batch)

        await runner.run(_task(), [Secret(name="trivy-1", string_data={"k": "v"})])

        namespace, body = core.create_namespaced_secret.call_args.args
        assert namespace == "kscan"
        assert body["metadata"]["labels"]["kscan.task-name"] == "scan-vulnerabilityreport-abc"
        assert "ownerReferences" not in body["metadata"]

        job_namespace, job_body = batch.create_namespaced_job.call_args.args
        assert job_namespace == "kscan"
        assert job_body["kind"] == "Job"

        name, _, updated = core.replace_namespaced_secret.call_args.args
        assert name == "trivy-1"
        assert updated["metadata"]["ownerReferences"] == [
            {
                "apiVersion": "batch/v1",
                "kind": "Job",
                "name": "scan-vulnerabilityreport-abc",
                "uid": JOB_UID,
            }
        ]

    @pytest.mark.asyncio
    async def test_secret_creation_failure_creates_no_job(self):
        core = _make_core()
        core.create_namespaced_secret.side_effect = ApiException(status=403, reason="Forbidden")
        batch = _make_batch()
        runner, watcher = _make_runner([], core=core, batch=batch)

        with pytest.raises(TaskCreationError, match="creating secret"):
            await runner.run(_task(), [Secret(name="trivy-1")])

        batch.create_namespaced_job.assert_not_called()
        assert watcher.subscribed == []

    @pytest.mark.asyncio
    async def test_secret_creation_timeout_is_creation_error(self):
        core = _make_core()
        core.create_namespaced_secret.side_effect = ReadTimeoutError(
            None, "/api/v1/secrets", "Read timed out."
        )
        batch = _make_batch()
        runner, _ = _make_runner([], core=core, batch=batch)

        with pytest.raises(TaskCreationError, match="creating secret"):
            await runner.run(_task(), [Secret(name="trivy-1")])

        batch.create_namespaced_job.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_job_raises_already_exists(self):
        batch = _make_batch()
        batch.create_namespaced_job.side_effect = ApiException(status=409, reason="Conflict")
        runner, watcher = _make_runner([], batch=batch)

        with pytest.raises(TaskAlreadyExistsError):
            await runner.run(_task())

        assert watcher.subscribed == []

    @pytest.mark.asyncio
    async def test_job_creation_failure(self):
        batch = _make_batch()
        batch.create_namespaced_job.side_effect = ApiException(status=500, reason="Boom")
        runner, _ = _make_runner([], batch=batch)

        with pytest.raises(TaskCreationError) as exc_info:
            await runner.run(_task())

        assert not isinstance(exc_info.value, TaskAlreadyExistsError)

    @pytest.mark.asyncio
    async def test_ownership_failure_names_unowned_secrets(self):
        core = _make_core()
        updates: list[str] = []

        def replace(name: str, namespace: str, body: dict[str, Any], **kwargs: Any):
            updates.append(name)
            if name == "second":
                raise ApiException(status=500, reason="Boom")
            return body

        core.replace_namespaced_secret.side_effect = replace
        runner, watcher = _make_runner([], core=core)

        with pytest.raises(SecretOwnershipError) as exc_info:
            await runner.run(_task(), [Secret(name="first"), Secret(name="second")])

        assert updates == ["first", "second"]
        assert exc_info.value.unowned == ["second"]
        assert watcher.subscribed == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_background_propagation(self):
        batch = _make_batch()
        runner, _ = _make_runner([], batch=batch)

        await runner.delete(_task())

        batch.delete_namespaced_job.assert_called_once_with(
            "scan-vulnerabilityreport-abc",
            "kscan",
            propagation_policy="Background",
            _request_timeout=5,
        )

    @pytest.mark.asyncio
    async def test_refused_connection_is_external_service_error(self):
        batch = _make_batch()
        batch.delete_namespaced_job.side_effect = MaxRetryError(
            None, "/apis/batch/v1/jobs", ConnectionRefusedError()
        )
        runner, _ = _make_runner([], batch=batch)

        with pytest.raises(ExternalServiceError, match="deleting job"):
            await runner.delete(_task())
