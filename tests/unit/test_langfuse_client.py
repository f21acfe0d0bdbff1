import base64
import json
import threading
from datetime import UTC, datetime

import httpx
import pytest

from claude_langfuse.models.schemas import Generation, Trace
from claude_langfuse.utils.langfuse_client import LangfuseClient, LangfuseError

TS = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)


class FakeIngestion:
    """Records ingestion requests and answers with a configurable status."""

    def __init__(self, status_code: int = 207):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"successes": [], "errors": []})

    def batches(self):
        return [json.loads(r.content)["batch"] for r in self.requests]


def _client(handler, batch_size: int = 10) -> LangfuseClient:
    return LangfuseClient(
        host="http://langfuse.test/",
        public_key="pk-lf-1",
        secret_key="sk-lf-1",
        batch_size=batch_size,
        transport=httpx.MockTransport(handler),
    )


def _trace(n: int) -> Trace:
    return Trace(id=f"u{n}", name="claude_code_user", session_id="s1", input=f"q{n}", timestamp=TS)


def test_flush_empty_buffer_is_noop():
    ingestion = FakeIngestion()
    client = _client(ingestion)

    client.flush()

    assert ingestion.requests == []


def test_below_threshold_stays_buffered():
    ingestion = FakeIngestion()
    client = _client(ingestion)

    for n in range(9):
        client.create_trace(_trace(n))

    assert client.event_count() == 9
    assert ingestion.requests == []


def test_threshold_triggers_flush():
    ingestion = FakeIngestion()
    client = _client(ingestion, batch_size=3)

    for n in range(3):
        client.create_trace(_trace(n))

    assert client.event_count() == 0
    assert len(ingestion.requests) == 1
    assert [event["body"]["id"] for event in ingestion.batches()[0]] == ["u0", "u1", "u2"]


def test_request_shape():
    ingestion = FakeIngestion()
    client = _client(ingestion)
    client.create_trace(_trace(1))
    client.create_generation(
        Generation(
            id="a1",
            trace_id="u1",
            name="claude_response",
            model="claude-sonnet-4",
            output="answer",
            start_time=TS,
            end_time=TS,
        )
    )

    client.flush()

    request = ingestion.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://langfuse.test/api/public/ingestion"
    assert request.headers["content-type"] == "application/json"
    expected_auth = base64.b64encode(b"pk-lf-1:sk-lf-1").decode()
    assert request.headers["authorization"] == f"Basic {expected_auth}"

    trace_event, generation_event = ingestion.batches()[0]
    assert trace_event["type"] == "trace-create"
    assert trace_event["body"] == {
        "id": "u1",
        "name": "claude_code_user",
        "sessionId": "s1",
        "input": "q1",
        "timestamp": "2025-01-02T03:04:05Z",
    }
    assert generation_event["type"] == "generation-create"
    assert generation_event["body"]["traceId"] == "u1"
    assert generation_event["body"]["startTime"] == "2025-01-02T03:04:05Z"
    assert "metadata" not in generation_event["body"]


@pytest.mark.parametrize("status_code", [400, 401, 500, 503])
def test_failed_flush_keeps_buffer(status_code):
    ingestion = FakeIngestion(status_code=status_code)
    client = _client(ingestion)
    client.create_trace(_trace(1))
    client.create_trace(_trace(2))

    with pytest.raises(LangfuseError) as exc_info:
        client.flush()

    assert exc_info.value.status_code == status_code
    assert client.event_count() == 2

    ingestion.status_code = 200
    client.flush()

    assert client.event_count() == 0
    assert [len(batch) for batch in ingestion.batches()] == [2, 2]


def test_transport_error_keeps_buffer():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    client.create_trace(_trace(1))

    with pytest.raises(LangfuseError) as exc_info:
        client.flush()

    assert exc_info.value.status_code is None
    assert client.event_count() == 1


def test_threshold_flush_failure_raises_and_keeps_events():
    client = _client(FakeIngestion(status_code=500), batch_size=2)
    client.create_trace(_trace(1))

    with pytest.raises(LangfuseError):
        client.create_trace(_trace(2))

    assert client.event_count() == 2


def test_concurrent_enqueue_delivers_every_event():
    ingestion = FakeIngestion()
    client = _client(ingestion, batch_size=5)

    def produce(offset):
        for n in range(20):
            client.create_trace(_trace(offset + n))

    threads = [threading.Thread(target=produce, args=(i * 100,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    client.flush()

    ids = [event["body"]["id"] for batch in ingestion.batches() for event in batch]
    assert len(ids) == 80
    assert len(set(ids)) == 80


def test_shutdown_flushes_and_closes():
    ingestion = FakeIngestion()
    client = _client(ingestion)
    client.create_trace(_trace(1))

    client.shutdown()

    assert client.event_count() == 0
    assert len(ingestion.requests) == 1


def test_unusable_host_raises_langfuse_error():
    ingestion = FakeIngestion()
    client = LangfuseClient(
        host="http://" + "a" * 70 + ".com",
        public_key="pk-lf-1",
        secret_key="sk-lf-1",
        batch_size=10,
        transport=httpx.MockTransport(ingestion),
    )
    client.create_trace(_trace(1))

    with pytest.raises(LangfuseError):
        client.flush()

    assert client.event_count() == 1
    assert ingestion.requests == []
