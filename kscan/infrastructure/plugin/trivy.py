"""Trivy vulnerability scanner plugin."""

import uuid
from typing import Any, ClassVar

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
from kscan.infrastructure.plugin.config import TrivyConfig, TrivyMode

_SEVERITIES = {
    "CRITICAL": Severity.CRITICAL,
    "HIGH": Severity.HIGH,
    "MEDIUM": Severity.MEDIUM,
    "LOW": Severity.LOW,
}


class TrivyPlugin:
    """Scans every container image of a workload with Trivy.

    The task gets one Trivy container per workload container, named after it,
    so the orchestrator can read each container's findings separately.
    """

    kind: ClassVar[PluginKind] = PluginKind.TRIVY

    def __init__(self, config: TrivyConfig) -> None:
        self._config = config

    async def init(self, ctx: PluginContext) -> None:
        validate_image_ref(self._config.image_ref, self.kind)
        if self._config.mode == TrivyMode.CLIENT_SERVER and not self._config.server_url:
            raise ConfigurationError("trivy: server_url is required in ClientServer mode")

    async def get_task_spec(
        self,
        ctx: PluginContext,
        pod_spec: dict[str, Any],
        credentials: dict[str, DockerAuth],
    ) -> tuple[dict[str, Any], list[Secret]]:
        secret_name = f"{ctx.name}-{uuid.uuid4()}"
        string_data: dict[str, str] = {}
        containers = []
        for container in pod_spec.get("containers") or []:
            name = container["name"]
            env = [{"name": "TRIVY_SEVERITY", "value": self._config.severity}]
            auth = credentials.get(name)
            if auth is not None:
                string_data[f"{name}.username"] = auth.username
                string_data[f"{name}.password"] = auth.password
                env += [
                    self._env_from_secret("TRIVY_USERNAME", secret_name, f"{name}.username"),
                    self._env_from_secret("TRIVY_PASSWORD", secret_name, f"{name}.password"),
                ]
            containers.append(
                {
                    "name": name,
                    "image": self._config.image_ref,
                    "imagePullPolicy": "IfNotPresent",
                    "terminationMessagePolicy": "FallbackToLogsOnError",
                    "command": ["trivy"],
                    "args": self._args(container.get("image", "")),
                    "env": env,
                    "resources": {
                        "requests": {"cpu": "100m", "memory": "100M"},
                        "limits": {"cpu": "500m", "memory": "500M"},
                    },
                }
            )

        secrets = [Secret(name=secret_name, string_data=string_data)] if string_data else []
        spec = {
            "restartPolicy": "Never",
            "automountServiceAccountToken": False,
            "affinity": LINUX_NODE_AFFINITY,
            "containers": containers,
        }
        return spec, secrets

    def _args(self, image_ref: str) -> list[str]:
        if self._config.mode == TrivyMode.CLIENT_SERVER:
            return [
                "--quiet",
                "client",
                "--format",
                "json",
                "--remote",
                self._config.server_url,
                image_ref,
            ]
        return ["--quiet", "image", "--format", "json", "--no-progress", image_ref]

    @staticmethod
    def _env_from_secret(env: str, secret: str, key: str) -> dict[str, Any]:
        return {
            "name": env,
            "valueFrom": {"secretKeyRef": {"name": secret, "key": key}},
        }

    async def parse_output(
        self,
        ctx: PluginContext,
        image_ref: str,
        logs: LogStream,
    ) -> PolicyReportData:
        output = await read_json(logs, self.kind)
        # Older releases print a bare list of targets, newer ones wrap it.
        if isinstance(output, dict):
            targets = output.get("Results") or []
        elif isinstance(output, list):
            targets = output
        else:
            raise ReportParseError("trivy: unexpected output shape")

        with mapping_output(self.kind):
            return PolicyReportData.from_results(self._results(targets, image_ref))

    def _results(self, targets: list[Any], image_ref: str) -> list[PolicyReportResult]:
        source = f"trivy:{image_version(self._config.image_ref)}"
        results = []
        for target in targets:
            for vuln in target.get("Vulnerabilities") or []:
                results.append(
                    PolicyReportResult(
                        source=source,
                        policy=vuln.get("VulnerabilityID", ""),
                        rule=vuln.get("PkgName", ""),
                        category="vulnerability",
                        severity=_SEVERITIES.get(vuln.get("Severity", ""), Severity.INFO),
                        result=ResultStatus.FAIL,
                        message=vuln.get("Title") or vuln.get("Description", ""),
                        properties={
                            "image": image_ref,
                            "target": target.get("Target", ""),
                            "installedVersion": vuln.get("InstalledVersion", ""),
                            "fixedVersion": vuln.get("FixedVersion", ""),
                            "primaryURL": vuln.get("PrimaryURL", ""),
                        },
                    )
                )
        return results
