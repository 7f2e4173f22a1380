"""Plugin protocol implemented by every scanner integration."""

from typing import Any, ClassVar, Protocol, runtime_checkable

from kscan.domain.report.model.value import PolicyReportData
from kscan.domain.scan.model.value import PluginContext, PluginKind
from kscan.domain.task.model.value import Secret
from kscan.domain.task.port.logs import LogStream
from kscan.domain.workload.model.credentials import DockerAuth


@runtime_checkable
class Plugin(Protocol):
    """Contract between the scan orchestrator and one scanner tool.

    Class attributes:
        kind: The variant this class implements.
    """

    kind: ClassVar[PluginKind]

    async def init(self, ctx: PluginContext) -> None:
        """Validate configuration before the first scan.

        Raises:
            ConfigurationError: If the plugin cannot run with its configuration.
        """
        ...

    async def get_task_spec(
        self,
        ctx: PluginContext,
        pod_spec: dict[str, Any],
        credentials: dict[str, DockerAuth],
    ) -> tuple[dict[str, Any], list[Secret]]:
        """Describe the pod that scans a workload with the given pod spec.

        Args:
            ctx: Plugin context.
            pod_spec: Pod spec of the scanned workload.
            credentials: Registry credentials keyed by container name; pass
                them to the scanner through the returned secrets.

        Returns:
            The scanner pod spec and the secrets it references.
        """
        ...

    async def parse_output(
        self,
        ctx: PluginContext,
        image_ref: str,
        logs: LogStream,
    ) -> PolicyReportData:
        """Convert the output of one scanner container into a report payload.

        Raises:
            ReportParseError: If the output is malformed.
        """
        ...
