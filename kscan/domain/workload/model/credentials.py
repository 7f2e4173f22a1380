"""Registry credentials discovered from image pull secrets."""

import base64
import binascii
import json
from typing import Any

from kscan.domain.shared.error import ValidationError
from kscan.domain.shared.model.value import ValueObject
from kscan.domain.workload.model.value import ContainerImages

DOCKER_HUB_SERVER = "index.docker.io"

SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
SECRET_TYPE_DOCKER_CFG = "kubernetes.io/dockercfg"


class DockerAuth(ValueObject):
    auth: str = ""
    username: str = ""
    password: str = ""


def _b64decode(value: str, what: str) -> str:
    try:
        return base64.b64decode(value).decode()
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValidationError(f"decoding {what}: {e}") from e


def normalize_server(server: str) -> str:
    """Reduce a docker config key to its host, e.g. ``https://index.docker.io/v1/``."""
    for prefix in ("https://", "http://"):
        if server.startswith(prefix):
            server = server[len(prefix):]
            break
    server = server.split("/", 1)[0]
    if server == "docker.io":
        return DOCKER_HUB_SERVER
    return server


def server_from_image_ref(image_ref: str) -> str:
    """Registry host of an image reference; Docker Hub when none is given."""
    first, sep, _ = image_ref.partition("/")
    if not sep:
        return DOCKER_HUB_SERVER
    if "." in first or ":" in first or first == "localhost":
        return normalize_server(first)
    return DOCKER_HUB_SERVER


def _auth_from_entry(entry: dict[str, Any]) -> DockerAuth:
    auth = entry.get("auth", "")
    username = entry.get("username", "")
    password = entry.get("password", "")
    if auth and not (username and password):
        username, _, password = _b64decode(auth, "auth").partition(":")
    return DockerAuth(auth=auth, username=username, password=password)


def parse_docker_config(secret: dict[str, Any]) -> dict[str, DockerAuth]:
    """Map registry servers to credentials for one image pull secret."""
    data = secret.get("data") or {}
    secret_type = secret.get("type")
    if secret_type == SECRET_TYPE_DOCKER_CONFIG_JSON:
        raw = data.get(".dockerconfigjson")
    elif secret_type == SECRET_TYPE_DOCKER_CFG:
        raw = data.get(".dockercfg")
    else:
        return {}
    if not raw:
        return {}

    name = (secret.get("metadata") or {}).get("name", "")
    try:
        config = json.loads(_b64decode(raw, f"secret {name}"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"parsing docker config of secret {name}: {e}") from e

    # dockerconfigjson nests entries under "auths"; legacy dockercfg does not
    auths = config.get("auths", {}) if secret_type == SECRET_TYPE_DOCKER_CONFIG_JSON else config
    return {normalize_server(server): _auth_from_entry(entry) for server, entry in auths.items()}


def _match_wildcard(auths: dict[str, DockerAuth], server: str) -> DockerAuth | None:
    for pattern, auth in auths.items():
        if pattern.startswith("*.") and server.endswith(pattern[1:]):
            return auth
    return None


def map_container_names_to_docker_auths(
    images: ContainerImages,
    secrets: list[dict[str, Any]],
) -> dict[str, DockerAuth]:
    """Resolve, per container, the credentials for the registry its image lives in."""
    auths: dict[str, DockerAuth] = {}
    for secret in secrets:
        auths.update(parse_docker_config(secret))

    mapping: dict[str, DockerAuth] = {}
    for container_name, image_ref in images.items():
        server = server_from_image_ref(image_ref)
        auth = auths.get(server) or _match_wildcard(auths, server)
        if auth is not None:
            mapping[container_name] = auth
    return mapping
