"""Unit tests for KubeReportReadWriter."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from kscan.domain.report.model.value import (
    OwnerReference,
    PolicyReportData,
    PolicyReportResult,
    Report,
    ResultStatus,
)
from kscan.domain.shared.error import ExternalServiceError, NotFoundError
from kscan.domain.workload.model.value import ObjectRef
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.infrastructure.k8s.report_store import KubeReportReadWriter


def _report(name: str = "deployment-web-app", container: str = "app") -> Report:
    return Report(
        name=name,
        namespace="ns",
        labels={
            "kscan.resource.kind": "Deployment",
            "kscan.resource.name": "web",
            "kscan.resource.namespace": "ns",
            "kscan.container.name": container,
        },
        owner_references=[
            OwnerReference(api_version="apps/v1", kind="Deployment", name="web", uid="u1")
        ],
        data=PolicyReportData.from_results(
            [PolicyReportResult(source="trivy", policy="CVE-1", result=ResultStatus.FAIL)]
        ),
    )


def _make_store(
    custom: MagicMock, resolver: ObjectResolver | None = None
) -> KubeReportReadWriter:
    return KubeReportReadWriter(custom, resolver or MagicMock(spec=ObjectResolver))


def _items(*reports: Report) -> dict[str, Any]:
    return {"items": [r.to_manifest() for r in reports]}


class TestWrite:
    @pytest.mark.asyncio
    async def test_creates_when_missing(self):
        custom = MagicMock()
        custom.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")
        custom.create_namespaced_custom_object.return_value = {}
        report = _report()

        await _make_store(custom).write([report])

        args = custom.create_namespaced_custom_object.call_args.args
        assert args[:4] == ("wgpolicyk8s.io", "v1alpha2", "ns", "policyreports")
        assert args[4] == report.to_manifest()
        custom.replace_namespaced_custom_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_updates_existing_preserving_system_fields(self):
        existing = {
            **_report().to_manifest(),
            "results": [],
            "summary": {"pass": 0, "fail": 0, "warn": 0, "error": 0, "skip": 0},
        }
        existing["metadata"] = {
            **existing["metadata"],
            "labels": {"stale": "label"},
            "resourceVersion": "42",
            "uid": "report-uid",
            "creationTimestamp": "2024-01-01T00:00:00Z",
        }
        custom = MagicMock()
        custom.get_namespaced_custom_object.return_value = existing
        custom.replace_namespaced_custom_object.return_value = {}
        report = _report()

        await _make_store(custom).write([report])

        name, updated = custom.replace_namespaced_custom_object.call_args.args[4:]
        assert name == "deployment-web-app"
        assert updated["metadata"]["resourceVersion"] == "42"
        assert updated["metadata"]["uid"] == "report-uid"
        assert updated["metadata"]["labels"] == report.labels
        assert updated["summary"]["fail"] == 1
        assert len(updated["results"]) == 1
        # The fetched object itself is left untouched.
        assert existing["metadata"]["labels"] == {"stale": "label"}
        custom.create_namespaced_custom_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_lookup_errors_surface(self):
        custom = MagicMock()
        custom.get_namespaced_custom_object.side_effect = ApiException(status=500, reason="Boom")

        with pytest.raises(ExternalServiceError):
            await _make_store(custom).write([_report()])

        custom.create_namespaced_custom_object.assert_not_called()


class TestFind:
    @pytest.mark.asyncio
    async def test_find_by_owner_uses_label_selector(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = _items(_report())

        reports = await _make_store(custom).find_by_owner(
            ObjectRef(kind="Deployment", name="web", namespace="ns")
        )

        assert reports == [_report()]
        selector = custom.list_namespaced_custom_object.call_args.kwargs["label_selector"]
        assert selector == (
            "kscan.resource.kind=Deployment,kscan.resource.name=web,kscan.resource.namespace=ns"
        )

    @pytest.mark.asyncio
    async def test_hierarchy_falls_back_to_replicaset(self):
        rs_report = _report(name="replicaset-web-abc-app")
        custom = MagicMock()
        custom.list_namespaced_custom_object.side_effect = [{"items": []}, _items(rs_report)]
        resolver = MagicMock(spec=ObjectResolver)
        resolver.get_related_replicaset_name = AsyncMock(return_value="web-abc")

        reports = await _make_store(custom, resolver).find_by_owner_in_hierarchy(
            ObjectRef(kind="Deployment", name="web", namespace="ns")
        )

        assert reports == [rs_report]
        second_selector = custom.list_namespaced_custom_object.call_args.kwargs["label_selector"]
        assert "kscan.resource.kind=ReplicaSet" in second_selector
        assert "kscan.resource.name=web-abc" in second_selector

    @pytest.mark.asyncio
    async def test_hierarchy_not_attempted_with_direct_reports(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = _items(_report())
        resolver = MagicMock(spec=ObjectResolver)
        resolver.get_related_replicaset_name = AsyncMock()

        reports = await _make_store(custom, resolver).find_by_owner_in_hierarchy(
            ObjectRef(kind="Deployment", name="web", namespace="ns")
        )

        assert len(reports) == 1
        resolver.get_related_replicaset_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_hierarchy_not_attempted_for_other_kinds(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = {"items": []}
        resolver = MagicMock(spec=ObjectResolver)
        resolver.get_related_replicaset_name = AsyncMock()

        reports = await _make_store(custom, resolver).find_by_owner_in_hierarchy(
            ObjectRef(kind="StatefulSet", name="db", namespace="ns")
        )

        assert reports == []
        resolver.get_related_replicaset_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_hierarchy_lookup_error_names_the_owner(self):
        custom = MagicMock()
        custom.list_namespaced_custom_object.return_value = {"items": []}
        resolver = MagicMock(spec=ObjectResolver)
        resolver.get_related_replicaset_name = AsyncMock(
            side_effect=NotFoundError("no active replicaset for deployment ns/web at revision 3")
        )

        with pytest.raises(NotFoundError) as exc_info:
            await _make_store(custom, resolver).find_by_owner_in_hierarchy(
                ObjectRef(kind="Deployment", name="web", namespace="ns")
            )

        assert exc_info.value.message == (
            "getting replicaset related to Deployment/web: "
            "no active replicaset for deployment ns/web at revision 3"
        )
