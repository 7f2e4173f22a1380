from dishka import AsyncContainer, Provider, from_context, make_async_container

from kscan.config import Config
from kscan.domain.scan.util.di import ScanProvider
from kscan.infrastructure.k8s.di import KubeProvider
from kscan.infrastructure.plugin.di import PluginProvider
from kscan.util.di.scope import Scope


class ConfigProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()

    return make_async_container(
        ConfigProvider(),
        KubeProvider(),
        PluginProvider(),
        ScanProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
