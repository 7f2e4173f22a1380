from kscan.domain.workload.port.resolver import ObjectResolver
from kscan.domain.workload.port.secrets import SecretsReader

__all__ = ["ObjectResolver", "SecretsReader"]
