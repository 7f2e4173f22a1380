"""ScanOrchestrator - runs one scanner task for a workload and turns its output into reports."""

import copy
import logging
from collections.abc import Iterator
from contextlib import closing, contextmanager
from typing import Any

import logfire

from kscan.config import ScanJobConfig
from kscan.domain.report.model.value import (
    LABEL_POD_SPEC_HASH,
    LABEL_RESOURCE_KIND,
    LABEL_RESOURCE_NAME,
    LABEL_RESOURCE_NAMESPACE,
    Report,
)
from kscan.domain.report.service.builder import ReportBuilder
from kscan.domain.scan.model.value import PluginContext
from kscan.domain.scan.port.plugin import Plugin
from kscan.domain.shared.error import KscanError, ScanError, TaskCreationError, ValidationError
from kscan.domain.shared.hashing import compute_hash
from kscan.domain.shared.service import Service
from kscan.domain.task.model.value import (
    ANNOTATION_CONTAINER_IMAGES,
    LABEL_MANAGED_BY,
    LABEL_SCANNER,
    MANAGED_BY,
    Task,
)
from kscan.domain.task.port.logs import LogsReader
from kscan.domain.task.port.task_runner import TaskRunner
from kscan.domain.workload.model.credentials import map_container_names_to_docker_auths
from kscan.domain.workload.model.value import (
    ContainerImages,
    ObjectRef,
    get_container_images,
    get_pod_spec,
    scan_job_name,
)
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.domain.workload.port.secrets import SecretsReader

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except KscanError as e:
        raise ScanError(name, e) from e


class ScanOrchestrator(Service):
    """Scans one workload with the configured plugin.

    A scan either returns a report for every scanner container or raises
    ``ScanError`` naming the stage that failed; partial results are never
    returned. Repeated scans of one workload share a job name, so a scan
    started while another is still running fails with
    ``TaskAlreadyExistsError`` as its cause.
    """

    resolver: ObjectResolver
    secrets: SecretsReader
    plugin: Plugin
    plugin_context: PluginContext
    task_runner: TaskRunner
    logs: LogsReader
    config: ScanJobConfig

    async def scan(self, owner: ObjectRef) -> list[Report]:
        """Scan ``owner`` and return one report per scanner container.

        Raises:
            ScanError: If any stage fails. ``cause`` holds the original error.
        """
        with _stage("resolving object"):
            obj = await self.resolver.get_object(owner)
        with _stage("getting pod template"):
            pod_spec = get_pod_spec(obj)
        with _stage("getting credentials"):
            namespace = (obj.get("metadata") or {}).get("namespace", owner.namespace)
            pull_secrets = await self.secrets.list_image_pull_secrets(pod_spec, namespace)
            credentials = map_container_names_to_docker_auths(
                get_container_images(pod_spec), pull_secrets
            )
        with _stage("preparing scan job"):
            template, secrets = await self.plugin.get_task_spec(
                self.plugin_context, copy.deepcopy(pod_spec), credentials
            )
            task = self._prepare_task(obj, pod_spec, template)

        logger.info(f"Scanning {ObjectRef.from_object(obj)} with {self.plugin.kind} as {task.name}")
        created = True
        try:
            with _stage("running scan job"):
                try:
                    await self.task_runner.run(task, secrets)
                except TaskCreationError:
                    # The job may belong to a concurrent scan; leave it alone.
                    created = False
                    raise
            reports = await self._collect_reports(obj, task)
        finally:
            if created and self.config.delete_scan_job:
                await self._delete(task)

        logfire.info(
            "Scan completed",
            job=task.name,
            owner=str(ObjectRef.from_object(obj)),
            reports=len(reports),
        )
        return reports

    def _prepare_task(
        self,
        obj: dict[str, Any],
        pod_spec: dict[str, Any],
        template: dict[str, Any],
    ) -> Task:
        ref = ObjectRef.from_object(obj)
        spec = dict(template)
        spec["tolerations"] = [*(template.get("tolerations") or []), *self.config.tolerations]
        spec["serviceAccountName"] = self.plugin_context.service_account_name
        spec["restartPolicy"] = "Never"

        owner_images = get_container_images(pod_spec)
        images = ContainerImages(
            {
                c["name"]: owner_images.get(c["name"]) or c.get("image", "")
                for c in spec.get("containers") or []
            }
        )
        labels = {
            LABEL_RESOURCE_KIND: ref.kind,
            LABEL_RESOURCE_NAME: ref.name,
            LABEL_RESOURCE_NAMESPACE: ref.namespace,
            LABEL_POD_SPEC_HASH: compute_hash(pod_spec),
            LABEL_MANAGED_BY: MANAGED_BY,
            LABEL_SCANNER: str(self.plugin.kind),
        }
        return Task(
            name=scan_job_name(ref),
            namespace=self.plugin_context.namespace,
            pod_spec=spec,
            labels=labels,
            annotations={ANNOTATION_CONTAINER_IMAGES: images.as_json()},
            pod_annotations=dict(self.config.annotations),
            active_deadline_seconds=self.config.active_deadline_seconds,
        )

    async def _collect_reports(self, obj: dict[str, Any], task: Task) -> list[Report]:
        with _stage("getting container images"):
            raw = task.annotations.get(ANNOTATION_CONTAINER_IMAGES)
            if raw is None:
                raise ValidationError(
                    f"job {task.name} has no {ANNOTATION_CONTAINER_IMAGES} annotation",
                    field=ANNOTATION_CONTAINER_IMAGES,
                )
            images = ContainerImages.from_json(raw)

        pod_spec_hash = task.labels.get(LABEL_POD_SPEC_HASH, "")
        reports = []
        for container, image_ref in images.items():
            with _stage("getting logs"):
                stream = await self.logs.get_logs(task, container)
            with closing(stream), _stage("parsing logs"):
                data = await self.plugin.parse_output(self.plugin_context, image_ref, stream)
            with _stage("building report"):
                report = ReportBuilder(
                    owner=obj,
                    container=container,
                    data=data,
                    pod_spec_hash=pod_spec_hash,
                ).build()
            reports.append(report)
        return reports

    async def _delete(self, task: Task) -> None:
        try:
            await self.task_runner.delete(task)
        except Exception as e:
            logfire.warning("Failed to delete scan job", job=task.name, error=str(e))
