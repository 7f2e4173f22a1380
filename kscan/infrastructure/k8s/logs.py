import asyncio

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from kscan.domain.shared.error import ExternalServiceError, NotFoundError
from kscan.domain.task.model.value import Task
from kscan.domain.task.port.logs import LogsReader, LogStream
from kscan.infrastructure.k8s.api import TRANSPORT_ERRORS, call, translate


class KubeLogsReader(LogsReader):
    """Reads container logs of the pod created by a task's job."""

    def __init__(self, core: client.CoreV1Api, request_timeout: float | None = None):
        self._core = core
        self._timeout = request_timeout

    async def get_logs(self, task: Task, container: str) -> LogStream:
        pods = await call(
            self._core.list_namespaced_pod,
            task.namespace,
            label_selector=f"job-name={task.name}",
            action=f"listing pods of job {task.name}",
            timeout=self._timeout,
        )
        items = pods.get("items") or []
        if not items:
            raise NotFoundError(f"no pod found for job {task.namespace}/{task.name}")
        pod_name = items[0]["metadata"]["name"]

        # _preload_content=False returns the raw urllib3 response (a closable
        # binary stream), which must bypass the dict normalisation in call().
        try:
            return await asyncio.to_thread(
                self._core.read_namespaced_pod_log,
                pod_name,
                task.namespace,
                container=container,
                _preload_content=False,
                _request_timeout=self._timeout,
            )
        except ApiException as e:
            raise translate(e, f"getting logs of {pod_name}/{container}") from e
        except TRANSPORT_ERRORS as e:
            raise ExternalServiceError(f"getting logs of {pod_name}/{container}: {e}") from e
