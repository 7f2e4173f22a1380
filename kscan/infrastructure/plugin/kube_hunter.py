"""kube-hunter penetration test plugin."""

from typing import Any, ClassVar

from kscan.domain.report.model.value import (
    PolicyReportData,
    PolicyReportResult,
    ResultStatus,
    Severity,
)
from kscan.domain.scan.model.value import PluginContext, PluginKind
from kscan.domain.shared.error import ReportParseError
from kscan.domain.task.model.value import Secret
from kscan.domain.task.port.logs import LogStream
from kscan.domain.workload.model.credentials import DockerAuth
from kscan.infrastructure.plugin.base import (
    LINUX_NODE_AFFINITY,
    image_version,
    mapping_output,
    read_json,
    validate_image_ref,
)
from kscan.infrastructure.plugin.config import KubeHunterConfig

CONTAINER_NAME = "kube-hunter"

_SEVERITIES = {s.value: s for s in Severity}


class KubeHunterPlugin:
    """Hunts for weaknesses from inside a pod; the workload's pod spec is not used."""

    kind: ClassVar[PluginKind] = PluginKind.KUBE_HUNTER

    def __init__(self, config: KubeHunterConfig) -> None:
        self._config = config

    async def init(self, ctx: PluginContext) -> None:
        validate_image_ref(self._config.image_ref, self.kind)

    async def get_task_spec(
        self,
        ctx: PluginContext,
        pod_spec: dict[str, Any],
        credentials: dict[str, DockerAuth],
    ) -> tuple[dict[str, Any], list[Secret]]:
        spec = {
            "restartPolicy": "Never",
            "hostPID": True,
            "affinity": LINUX_NODE_AFFINITY,
            "containers": [
                {
                    "name": CONTAINER_NAME,
                    "image": self._config.image_ref,
                    "imagePullPolicy": "IfNotPresent",
                    "terminationMessagePolicy": "FallbackToLogsOnError",
                    "args": ["--pod", "--report", "json", "--log", "warn"],
                    "resources": {
                        "requests": {"cpu": "50m", "memory": "100M"},
                        "limits": {"cpu": "300m", "memory": "400M"},
                    },
                }
            ],
        }
        return spec, []

    async def parse_output(
        self,
        ctx: PluginContext,
        image_ref: str,
        logs: LogStream,
    ) -> PolicyReportData:
        output = await read_json(logs, self.kind)
        if not isinstance(output, dict):
            raise ReportParseError("kube-hunter: unexpected output shape")

        source = f"kube-hunter:{image_version(self._config.image_ref)}"
        with mapping_output(self.kind):
            results = [
                PolicyReportResult(
                    source=source,
                    policy=vuln.get("vid", ""),
                    rule=vuln.get("vulnerability", ""),
                    category=vuln.get("category", ""),
                    severity=_SEVERITIES.get(vuln.get("severity", ""), Severity.INFO),
                    result=ResultStatus.FAIL,
                    message=vuln.get("description", ""),
                    properties={
                        "location": vuln.get("location", ""),
                        "evidence": str(vuln.get("evidence", "")),
                        "hunter": vuln.get("hunter", ""),
                    },
                )
                for vuln in output.get("vulnerabilities") or []
            ]
            return PolicyReportData.from_results(results)
