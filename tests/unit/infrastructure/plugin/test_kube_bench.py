"""Unit tests for KubeBenchPlugin."""

import json

import pytest

from kscan.domain.report.model.value import ResultStatus, Severity
from kscan.domain.scan.model.value import PluginContext
from kscan.domain.shared.error import ReportParseError
from kscan.infrastructure.plugin.config import KubeBenchConfig
from kscan.infrastructure.plugin.kube_bench import KubeBenchPlugin

CTX = PluginContext(name="kscan-kube-bench", namespace="kscan", service_account_name="kscan")


class BytesStream:
    def __init__(self, data: bytes):
        self._data = data

    def read(self, amt: int | None = None) -> bytes:
        return self._data

    def close(self) -> None:
        pass


CONTROLS = [
    {
        "id": "4",
        "text": "Worker Node Security Configuration",
        "node_type": "node",
        "tests": [
            {
                "section": "4.1",
                "desc": "Worker Node Configuration Files",
                "results": [
                    {
                        "test_number": "4.1.1",
                        "test_desc": "Ensure that the kubelet service file permissions are set",
                        "status": "PASS",
                        "scored": True,
                    },
                    {
                        "test_number": "4.1.2",
                        "test_desc": "Ensure that the kubelet service file ownership is set",
                        "status": "FAIL",
                        "scored": True,
                        "remediation": "chown root:root /etc/systemd/kubelet.service",
                    },
                    {
                        "test_number": "4.1.3",
                        "test_desc": "Manual check",
                        "status": "INFO",
                        "scored": False,
                    },
                ],
            }
        ],
    }
]


class TestGetTaskSpec:
    @pytest.mark.asyncio
    async def test_ignores_workload_pod_spec(self):
        spec, secrets = await KubeBenchPlugin(KubeBenchConfig()).get_task_spec(
            CTX, {"containers": [{"name": "app", "image": "nginx"}]}, {}
        )

        (container,) = spec["containers"]
        assert container["name"] == "kube-bench"
        assert container["command"] == ["kube-bench", "--json"]
        assert spec["hostPID"] is True
        assert secrets == []


class TestParseOutput:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("wrapped", [True, False])
    async def test_maps_statuses(self, wrapped: bool):
        output = {"Controls": CONTROLS} if wrapped else CONTROLS

        data = await KubeBenchPlugin(KubeBenchConfig()).parse_output(
            CTX, "aquasec/kube-bench:0.4.0", BytesStream(json.dumps(output).encode())
        )

        assert [r.result for r in data.results] == [
            ResultStatus.PASS,
            ResultStatus.FAIL,
            ResultStatus.SKIP,
        ]
        failed = data.results[1]
        assert failed.rule == "4.1.2"
        assert failed.severity == Severity.HIGH
        assert failed.category == "Worker Node Configuration Files"
        assert failed.properties["node_type"] == "node"
        assert data.results[2].scored is False

    @pytest.mark.asyncio
    async def test_section_of_wrong_type(self):
        output = {"Controls": [{"text": "Worker Node", "tests": ["4.1"]}]}

        with pytest.raises(ReportParseError, match="kube-bench: unexpected output"):
            await KubeBenchPlugin(KubeBenchConfig()).parse_output(
                CTX, "x", BytesStream(json.dumps(output).encode())
            )
