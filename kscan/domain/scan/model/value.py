from enum import StrEnum

from kscan.domain.shared.model.value import ValueObject


class PluginKind(StrEnum):
    """Closed set of supported scanner integrations."""

    TRIVY = "trivy"
    KUBE_HUNTER = "kube-hunter"
    KUBE_BENCH = "kube-bench"
    POLARIS = "polaris"


class PluginContext(ValueObject):
    """Where the plugin's tasks run."""

    name: str
    namespace: str
    service_account_name: str
