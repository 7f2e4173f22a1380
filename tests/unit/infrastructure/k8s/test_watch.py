"""Unit tests for JobSubscription."""

import asyncio
import time
from typing import Any
from unittest.mock import MagicMock

import pytest

from kscan.domain.shared.error import ExternalServiceError
from kscan.infrastructure.k8s import watch as watch_module
from kscan.infrastructure.k8s.watch import JobSubscription, KubeJobWatcher

JOB = {"metadata": {"name": "scan-job", "uid": "u1"}}


class FakeWatch:
    """Emits the configured events, then idles until stopped."""

    events: list[Any] = []
    instances: list["FakeWatch"] = []

    def __init__(self):
        self.stopped = False
        self.kwargs: dict[str, Any] = {}
        FakeWatch.instances.append(self)

    def stream(self, fn, **kwargs):
        self.kwargs = kwargs
        fn(**kwargs)
        for event in FakeWatch.events:
            if isinstance(event, Exception):
                raise event
            yield event
        while not self.stopped:
            time.sleep(0.01)

    def stop(self):
        self.stopped = True


@pytest.fixture
def fake_watch(monkeypatch: pytest.MonkeyPatch) -> type[FakeWatch]:
    FakeWatch.events = []
    FakeWatch.instances = []
    monkeypatch.setattr(watch_module.watch, "Watch", FakeWatch)
    return FakeWatch


class TestJobSubscription:
    @pytest.mark.asyncio
    async def test_delivers_events(self, fake_watch: type[FakeWatch]):
        fake_watch.events = [{"type": "ADDED", "raw_object": JOB, "object": None}]

        async with JobSubscription(MagicMock(), "kscan", "scan-job", resync_seconds=7) as sub:
            event = await asyncio.wait_for(sub.next(), timeout=2)

        assert event.type == "ADDED"
        assert event.job == JOB
        (instance,) = fake_watch.instances
        assert instance.kwargs["namespace"] == "kscan"
        assert instance.kwargs["field_selector"] == "metadata.name=scan-job"
        assert instance.kwargs["timeout_seconds"] == 7

    @pytest.mark.asyncio
    async def test_close_stops_watch(self, fake_watch: type[FakeWatch]):
        async with JobSubscription(MagicMock(), "kscan", "scan-job") as sub:
            while sub._watch is None:
                await asyncio.sleep(0.01)

        assert fake_watch.instances[0].stopped
        assert sub._queue.empty()

    @pytest.mark.asyncio
    async def test_stream_error_is_forwarded(self, fake_watch: type[FakeWatch]):
        fake_watch.events = [RuntimeError("connection reset")]

        async with JobSubscription(MagicMock(), "kscan", "scan-job") as sub:
            with pytest.raises(ExternalServiceError, match="connection reset"):
                await asyncio.wait_for(sub.next(), timeout=2)

    @pytest.mark.asyncio
    async def test_close_shuts_down_streaming_response(self, fake_watch: type[FakeWatch]):
        batch = MagicMock()
        async with JobSubscription(batch, "kscan", "scan-job") as sub:
            while sub._response is None:
                await asyncio.sleep(0.01)

        assert sub._response is batch.list_namespaced_job.return_value
        sub._response.shutdown.assert_called_once_with()
        assert batch.list_namespaced_job.call_args.kwargs["field_selector"] == (
            "metadata.name=scan-job"
        )


class TestKubeJobWatcher:
    def test_subscribe_uses_resync_window(self):
        batch = MagicMock()
        subscription = KubeJobWatcher(batch, resync_seconds=30).subscribe("kscan", "scan-job")

        assert isinstance(subscription, JobSubscription)
        assert subscription._resync_seconds == 30
