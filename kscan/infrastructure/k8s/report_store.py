"""Report records stored as PolicyReport custom objects."""

import copy
import logging

from kubernetes import client

from kscan.domain.report.model.value import (
    LABEL_RESOURCE_KIND,
    LABEL_RESOURCE_NAME,
    LABEL_RESOURCE_NAMESPACE,
    REPORT_GROUP,
    REPORT_PLURAL,
    REPORT_VERSION,
    Report,
)
from kscan.domain.report.port.repository import ReportReadWriter
from kscan.domain.shared.error import ExternalServiceError, KscanError, NotFoundError
from kscan.domain.workload.model.value import HIERARCHY_KINDS, Kind, ObjectRef
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.infrastructure.k8s.api import call

logger = logging.getLogger(__name__)


class KubeReportReadWriter(ReportReadWriter):
    def __init__(
        self,
        custom: client.CustomObjectsApi,
        resolver: ObjectResolver,
        request_timeout: float | None = None,
    ):
        self._custom = custom
        self._resolver = resolver
        self._timeout = request_timeout

    async def write(self, reports: list[Report]) -> None:
        for report in reports:
            await self._create_or_update(report)

    async def _create_or_update(self, report: Report) -> None:
        try:
            existing = await call(
                self._custom.get_namespaced_custom_object,
                REPORT_GROUP,
                REPORT_VERSION,
                report.namespace,
                REPORT_PLURAL,
                report.name,
                action=f"getting report {report.name}",
                timeout=self._timeout,
            )
        except NotFoundError:
            logger.debug("Creating report %s/%s", report.namespace, report.name)
            await call(
                self._custom.create_namespaced_custom_object,
                REPORT_GROUP,
                REPORT_VERSION,
                report.namespace,
                REPORT_PLURAL,
                report.to_manifest(),
                action=f"creating report {report.name}",
                timeout=self._timeout,
            )
            return

        # Keep resourceVersion, uid, ownerReferences and other server-managed fields.
        updated = copy.deepcopy(existing)
        updated.setdefault("metadata", {})["labels"] = dict(report.labels)
        updated.update(report.data.to_fields())
        logger.debug("Updating report %s/%s", report.namespace, report.name)
        await call(
            self._custom.replace_namespaced_custom_object,
            REPORT_GROUP,
            REPORT_VERSION,
            report.namespace,
            REPORT_PLURAL,
            report.name,
            updated,
            action=f"updating report {report.name}",
            timeout=self._timeout,
        )

    async def find_by_owner(self, owner: ObjectRef) -> list[Report]:
        selector = ",".join(
            [
                f"{LABEL_RESOURCE_KIND}={owner.kind}",
                f"{LABEL_RESOURCE_NAME}={owner.name}",
                f"{LABEL_RESOURCE_NAMESPACE}={owner.namespace}",
            ]
        )
        result = await call(
            self._custom.list_namespaced_custom_object,
            REPORT_GROUP,
            REPORT_VERSION,
            owner.namespace,
            REPORT_PLURAL,
            label_selector=selector,
            action=f"listing reports of {owner}",
            timeout=self._timeout,
        )
        return [Report.from_manifest(item) for item in result.get("items") or []]

    async def find_by_owner_in_hierarchy(self, owner: ObjectRef) -> list[Report]:
        reports = await self.find_by_owner(owner)
        if reports or owner.kind not in HIERARCHY_KINDS:
            return reports

        action = f"getting replicaset related to {owner.kind}/{owner.name}"
        try:
            rs_name = await self._resolver.get_related_replicaset_name(owner)
        except NotFoundError as e:
            raise NotFoundError(f"{action}: {e.message}") from e
        except KscanError as e:
            raise ExternalServiceError(f"{action}: {e.message}") from e
        return await self.find_by_owner(
            ObjectRef(kind=Kind.REPLICA_SET, name=rs_name, namespace=owner.namespace)
        )
