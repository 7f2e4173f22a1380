"""Polaris configuration audit plugin."""

import uuid
from typing import Any, ClassVar

import yaml

from kscan.domain.report.model.value import (
    PolicyReportData,
    PolicyReportResult,
    ResultStatus,
    Severity,
)
from kscan.domain.scan.model.value import PluginContext, PluginKind
from kscan.domain.shared.error import ConfigurationError, ReportParseError
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
from kscan.infrastructure.plugin.config import PolarisConfig

CONTAINER_NAME = "polaris"
MOUNT_PATH = "/etc/polaris"

_SEVERITIES = {"danger": Severity.HIGH, "warning": Severity.MEDIUM}
_FAILURES = {"danger": ResultStatus.FAIL, "warning": ResultStatus.WARN}


class PolarisPlugin:
    """Audits the workload's pod spec against Polaris best-practice checks.

    The pod spec is written as a Pod manifest into a secret that the Polaris
    container audits from disk, so the scan needs no cluster read access.
    """

    kind: ClassVar[PluginKind] = PluginKind.POLARIS

    def __init__(self, config: PolarisConfig) -> None:
        self._config = config

    async def init(self, ctx: PluginContext) -> None:
        validate_image_ref(self._config.image_ref, self.kind)
        try:
            checks = yaml.safe_load(self._config.config_yaml)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"polaris: invalid config_yaml: {e}") from e
        if not isinstance(checks, dict) or "checks" not in checks:
            raise ConfigurationError("polaris: config_yaml must define checks")

    async def get_task_spec(
        self,
        ctx: PluginContext,
        pod_spec: dict[str, Any],
        credentials: dict[str, DockerAuth],
    ) -> tuple[dict[str, Any], list[Secret]]:
        manifest = {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": "workload"},
            "spec": pod_spec,
        }
        secret = Secret(
            name=f"{ctx.name}-{uuid.uuid4()}",
            string_data={
                "pod.yaml": yaml.safe_dump(manifest),
                "config.yaml": self._config.config_yaml,
            },
        )
        spec = {
            "restartPolicy": "Never",
            "automountServiceAccountToken": False,
            "affinity": LINUX_NODE_AFFINITY,
            "volumes": [{"name": "polaris", "secret": {"secretName": secret.name}}],
            "containers": [
                {
                    "name": CONTAINER_NAME,
                    "image": self._config.image_ref,
                    "imagePullPolicy": "IfNotPresent",
                    "command": ["polaris"],
                    "args": [
                        "audit",
                        "--log-level",
                        "error",
                        "--config",
                        f"{MOUNT_PATH}/config.yaml",
                        "--audit-path",
                        f"{MOUNT_PATH}/pod.yaml",
                        "--format",
                        "json",
                    ],
                    "volumeMounts": [
                        {"name": "polaris", "mountPath": MOUNT_PATH, "readOnly": True}
                    ],
                    "resources": {
                        "requests": {"cpu": "50m", "memory": "50M"},
                        "limits": {"cpu": "300m", "memory": "300M"},
                    },
                }
            ],
        }
        return spec, [secret]

    async def parse_output(
        self,
        ctx: PluginContext,
        image_ref: str,
        logs: LogStream,
    ) -> PolicyReportData:
        output = await read_json(logs, self.kind)
        if not isinstance(output, dict):
            raise ReportParseError("polaris: unexpected output shape")

        source = f"polaris:{image_version(self._config.image_ref)}"
        with mapping_output(self.kind):
            results: list[PolicyReportResult] = []
            for resource in output.get("Results") or []:
                results += self._checks(source, resource.get("Results"), scope="workload")
                pod = resource.get("PodResult") or {}
                results += self._checks(source, pod.get("Results"), scope="pod")
                for container in pod.get("ContainerResults") or []:
                    results += self._checks(
                        source,
                        container.get("Results"),
                        scope="container",
                        container=container.get("Name", ""),
                    )
            return PolicyReportData.from_results(results)

    @staticmethod
    def _checks(
        source: str,
        checks: dict[str, Any] | None,
        scope: str,
        container: str = "",
    ) -> list[PolicyReportResult]:
        results = []
        for check_id, check in (checks or {}).items():
            severity = check.get("Severity", "")
            if check.get("Success"):
                status = ResultStatus.PASS
            else:
                status = _FAILURES.get(severity, ResultStatus.SKIP)
            properties = {"scope": scope}
            if container:
                properties["container"] = container
            results.append(
                PolicyReportResult(
                    source=source,
                    policy=check.get("ID", check_id),
                    category=check.get("Category", ""),
                    severity=_SEVERITIES.get(severity, Severity.INFO),
                    result=status,
                    message=check.get("Message", ""),
                    properties=properties,
                )
            )
        return results
