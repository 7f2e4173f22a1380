"""Helpers shared by the scanner plugins."""

import asyncio
import json
import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pydantic

from kscan.domain.shared.error import (
    ConfigurationError,
    ExternalServiceError,
    ReportParseError,
)
from kscan.domain.task.port.logs import LogStream
from kscan.infrastructure.k8s.api import TRANSPORT_ERRORS

# registry[:port]/repository[:tag][@digest], loosely matched.
_IMAGE_REF = re.compile(r"^[a-z0-9]+([._\-/:@][a-zA-Z0-9_.\-]+)*$")

LINUX_NODE_AFFINITY: dict[str, Any] = {
    "nodeAffinity": {
        "requiredDuringSchedulingIgnoredDuringExecution": {
            "nodeSelectorTerms": [
                {
                    "matchExpressions": [
                        {"key": "kubernetes.io/os", "operator": "In", "values": ["linux"]}
                    ]
                }
            ]
        }
    }
}


def validate_image_ref(image_ref: str, plugin: str) -> None:
    if not image_ref or not _IMAGE_REF.match(image_ref):
        raise ConfigurationError(f"{plugin}: invalid image reference {image_ref!r}")


def image_version(image_ref: str) -> str:
    """Tag or digest of an image reference, e.g. ``0.14.0`` or ``sha256:...``."""
    if "@" in image_ref:
        return image_ref.split("@", 1)[1]
    last = image_ref.rsplit("/", 1)[-1]
    if ":" in last:
        return last.split(":", 1)[1]
    return "latest"


async def read_json(logs: LogStream, plugin: str) -> Any:
    """Read the whole stream off the event loop and decode it as JSON."""
    try:
        raw = await asyncio.to_thread(logs.read)
    except TRANSPORT_ERRORS as e:
        raise ExternalServiceError(f"{plugin}: reading output: {e}") from e
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ReportParseError(f"{plugin}: invalid JSON output: {e}") from e


@contextmanager
def mapping_output(plugin: str) -> Iterator[None]:
    """Raise ``ReportParseError`` for decoded output of an unexpected shape."""
    try:
        yield
    except (AttributeError, TypeError, KeyError, pydantic.ValidationError) as e:
        raise ReportParseError(f"{plugin}: unexpected output: {e}") from e
