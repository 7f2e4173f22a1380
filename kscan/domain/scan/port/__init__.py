from kscan.domain.scan.port.plugin import Plugin

__all__ = ["Plugin"]
