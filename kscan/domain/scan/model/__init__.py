from kscan.domain.scan.model.value import PluginContext, PluginKind

__all__ = ["PluginContext", "PluginKind"]
