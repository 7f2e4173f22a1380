from kscan.domain.workload.model.credentials import (
    DockerAuth,
    map_container_names_to_docker_auths,
)
from kscan.domain.workload.model.value import (
    HIERARCHY_KINDS,
    KIND_API_VERSIONS,
    ContainerImages,
    Kind,
    ObjectRef,
    get_container_images,
    get_pod_spec,
    kind_for_object,
    scan_job_name,
)

__all__ = [
    "HIERARCHY_KINDS",
    "KIND_API_VERSIONS",
    "ContainerImages",
    "DockerAuth",
    "Kind",
    "ObjectRef",
    "get_container_images",
    "get_pod_spec",
    "kind_for_object",
    "map_container_names_to_docker_auths",
    "scan_job_name",
]
