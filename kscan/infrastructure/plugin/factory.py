from kscan.domain.scan.model.value import PluginKind
from kscan.domain.scan.port.plugin import Plugin
from kscan.infrastructure.plugin.config import PluginConfig
from kscan.infrastructure.plugin.kube_bench import KubeBenchPlugin
from kscan.infrastructure.plugin.kube_hunter import KubeHunterPlugin
from kscan.infrastructure.plugin.polaris import PolarisPlugin
from kscan.infrastructure.plugin.trivy import TrivyPlugin


def create_plugin(config: PluginConfig) -> Plugin:
    """Build the configured scanner variant."""
    match config.scanner:
        case PluginKind.TRIVY:
            return TrivyPlugin(config.trivy)
        case PluginKind.KUBE_HUNTER:
            return KubeHunterPlugin(config.kube_hunter)
        case PluginKind.KUBE_BENCH:
            return KubeBenchPlugin(config.kube_bench)
        case PluginKind.POLARIS:
            return PolarisPlugin(config.polaris)
