from kubernetes import client, config as kube_config
from kubernetes.config.config_exception import ConfigException

from kscan.config import KubeConfig
from kscan.domain.shared.error import ConfigurationError


def new_api_client(config: KubeConfig) -> client.ApiClient:
    """Build an API client from in-cluster credentials or a kubeconfig file."""
    configuration = client.Configuration()
    try:
        if config.in_cluster:
            kube_config.load_incluster_config(client_configuration=configuration)
        else:
            kube_config.load_kube_config(
                config_file=config.kubeconfig,
                context=config.context,
                client_configuration=configuration,
            )
    except ConfigException as e:
        raise ConfigurationError(f"loading cluster credentials: {e}") from e
    return client.ApiClient(configuration)
