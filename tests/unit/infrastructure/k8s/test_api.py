"""Unit tests for the async API call helpers."""

from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError, ReadTimeoutError

from kscan.domain.shared.error import ConflictError, ExternalServiceError, NotFoundError
from kscan.infrastructure.k8s.api import call, to_dict, translate


class TestTranslate:
    @pytest.mark.parametrize(
        ("status", "error"),
        [(404, NotFoundError), (409, ConflictError), (500, ExternalServiceError)],
    )
    def test_maps_status(self, status: int, error: type):
        translated = translate(ApiException(status=status, reason="Reason"), "getting pod x")

        assert isinstance(translated, error)
        assert translated.message == f"getting pod x: {status} Reason"


class TestToDict:
    def test_model_to_camel_case(self):
        pod = client.V1Pod(
            metadata=client.V1ObjectMeta(name="web", namespace="ns"),
            spec=client.V1PodSpec(
                containers=[client.V1Container(name="app", image="nginx")],
                service_account_name="builder",
            ),
        )

        assert to_dict(pod) == {
            "metadata": {"name": "web", "namespace": "ns"},
            "spec": {
                "containers": [{"name": "app", "image": "nginx"}],
                "serviceAccountName": "builder",
            },
        }

    def test_passes_dicts_through(self):
        value = {"a": 1}
        assert to_dict(value) is value


class TestCall:
    @pytest.mark.asyncio
    async def test_sets_request_timeout(self):
        fn = MagicMock(return_value={"ok": True})

        assert await call(fn, "a", action="x", timeout=3, flag=1) == {"ok": True}
        fn.assert_called_once_with("a", flag=1, _request_timeout=3)

    @pytest.mark.asyncio
    async def test_translates_api_errors(self):
        fn = MagicMock(side_effect=ApiException(status=404, reason="Not Found"))

        with pytest.raises(NotFoundError, match="reading thing"):
            await call(fn, action="reading thing")

    @pytest.mark.asyncio
    async def test_read_timeout_is_external_service_error(self):
        fn = MagicMock(side_effect=ReadTimeoutError(None, "/api/v1/pods", "Read timed out."))

        with pytest.raises(ExternalServiceError, match="listing pods: .*Read timed out"):
            await call(fn, action="listing pods", timeout=30)

    @pytest.mark.asyncio
    async def test_refused_connection_is_external_service_error(self):
        fn = MagicMock(
            side_effect=MaxRetryError(None, "/apis/batch/v1/jobs", ConnectionRefusedError())
        )

        with pytest.raises(ExternalServiceError, match="deleting job"):
            await call(fn, action="deleting job")

    @pytest.mark.asyncio
    async def test_socket_error_is_external_service_error(self):
        fn = MagicMock(side_effect=ConnectionResetError("reset by peer"))

        with pytest.raises(ExternalServiceError, match="reset by peer"):
            await call(fn, action="reading pod")
