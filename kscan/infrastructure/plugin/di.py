from dishka import Provider, provide

from kscan.config import Config
from kscan.domain.scan.model.value import PluginContext
from kscan.domain.scan.port.plugin import Plugin
from kscan.infrastructure.plugin.factory import create_plugin
from kscan.util.di.scope import Scope


class PluginProvider(Provider):
    @provide(scope=Scope.APP)
    def get_context(self, config: Config) -> PluginContext:
        return PluginContext(
            name=f"kscan-{config.plugin.scanner}",
            namespace=config.scan.namespace,
            service_account_name=config.scan.service_account,
        )

    @provide(scope=Scope.APP)
    async def get_plugin(self, config: Config, ctx: PluginContext) -> Plugin:
        plugin = create_plugin(config.plugin)
        await plugin.init(ctx)
        return plugin
