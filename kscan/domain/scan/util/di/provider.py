from dishka import Provider, provide

from kscan.config import Config
from kscan.domain.scan.model.value import PluginContext
from kscan.domain.scan.port.plugin import Plugin
from kscan.domain.scan.service.orchestrator import ScanOrchestrator
from kscan.domain.task.port.logs import LogsReader
from kscan.domain.task.port.task_runner import TaskRunner
from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.domain.workload.port.secrets import SecretsReader
from kscan.util.di.scope import Scope


class ScanProvider(Provider):
    @provide(scope=Scope.UOW)
    def get_orchestrator(
        self,
        resolver: ObjectResolver,
        secrets: SecretsReader,
        plugin: Plugin,
        plugin_context: PluginContext,
        task_runner: TaskRunner,
        logs: LogsReader,
        config: Config,
    ) -> ScanOrchestrator:
        return ScanOrchestrator(
            resolver=resolver,
            secrets=secrets,
            plugin=plugin,
            plugin_context=plugin_context,
            task_runner=task_runner,
            logs=logs,
            config=config.scan,
        )
