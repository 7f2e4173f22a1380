"""Thin async helpers over the synchronous kubernetes client."""

import asyncio
from collections.abc import Callable
from functools import cache
from typing import Any

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from kscan.domain.shared.error import (
    ConflictError,
    ExternalServiceError,
    KscanError,
    NotFoundError,
)


# Timeouts, refused connections and dropped streams below the API layer.
TRANSPORT_ERRORS = (HTTPError, OSError)


@cache
def _serializer() -> client.ApiClient:
    return client.ApiClient()


def to_dict(obj: Any) -> Any:
    """Normalise a client model object into Kubernetes JSON (camelCase) shape."""
    if obj is None or isinstance(obj, dict):
        return obj
    return _serializer().sanitize_for_serialization(obj)


def translate(e: ApiException, action: str) -> KscanError:
    """Map an API failure onto the kscan error hierarchy."""
    detail = f"{action}: {e.status} {e.reason}"
    if e.status == 404:
        return NotFoundError(detail)
    if e.status == 409:
        return ConflictError(detail)
    return ExternalServiceError(detail)


async def call(
    fn: Callable[..., Any],
    *args: Any,
    action: str,
    timeout: float | None = None,
    **kwargs: Any,
) -> Any:
    """Run a blocking API call off the event loop and return a plain dict.

    Cancelling the awaiting task abandons the request; ``timeout`` bounds how
    long the worker thread can linger.
    """
    if timeout is not None:
        kwargs["_request_timeout"] = timeout
    try:
        result = await asyncio.to_thread(fn, *args, **kwargs)
    except ApiException as e:
        raise translate(e, action) from e
    except TRANSPORT_ERRORS as e:
        raise ExternalServiceError(f"{action}: {e}") from e
    return to_dict(result)
