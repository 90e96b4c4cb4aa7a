from __future__ import annotations

import json
import re
import uuid

import pytest

from lambda_runtime.core.errors import (
    EmptyResponseBodyError,
    InvocationFetchError,
    MissingInvocationIdError,
    ResponsePostError,
)
from mock_runtime_api import MockResponse, MockRuntimeApi, invocation

NEXT_PATH = "/2018-06-01/runtime/invocation/next"


def _response_path(invocation_id: object) -> str:
    return f"/2018-06-01/runtime/invocation/{invocation_id}/response"


def _error_path(invocation_id: object) -> str:
    return f"/2018-06-01/runtime/invocation/{invocation_id}/error"


def test_runtime_posts_handler_result_to_response_endpoint(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation(1, b'{ "Hello": "world!"}'), MockResponse(200))

    seen = []

    def handler(event):  # type: ignore[no-untyped-def]
        seen.append(event)
        return {"hello": "world"}

    make_runtime(runtime_api.endpoint).process_next_event(handler)

    assert seen == [{"Hello": "world!"}]
    reqs = runtime_api.received
    assert [(r.method, r.path) for r in reqs] == [("GET", NEXT_PATH), ("POST", _response_path(1))]
    assert json.loads(reqs[1].body) == {"hello": "world"}
    assert reqs[1].headers["content-type"] == "application/json"
    assert int(reqs[1].headers["content-length"]) == len(reqs[1].body)


def test_runtime_fetch_non_2xx_raises_without_posting(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(MockResponse(404, {"Lambda-Runtime-Aws-Request-Id": "1"}, b'{ "Hello": "world!"}'))
    called = []

    with pytest.raises(InvocationFetchError, match=r"Failed to fetch next Lambda invocation: .*404 Not Found"):
        make_runtime(runtime_api.endpoint).process_next_event(lambda e: called.append(e))

    assert called == []
    assert [r.method for r in runtime_api.received] == ["GET"]


def test_runtime_missing_invocation_id(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(MockResponse(200, {}, b'{ "Hello": "world!"}'))

    with pytest.raises(MissingInvocationIdError, match="Failed to determine the Lambda invocation ID"):
        make_runtime(runtime_api.endpoint).process_next_event(lambda e: {"hello": "world"})

    assert [r.method for r in runtime_api.received] == ["GET"]


def test_runtime_empty_body(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation(1, b""))

    with pytest.raises(EmptyResponseBodyError, match="Empty Lambda runtime API response"):
        make_runtime(runtime_api.endpoint).process_next_event(lambda e: {"hello": "world"})

    assert [r.method for r in runtime_api.received] == ["GET"]


def test_runtime_connection_refused_raises_fetch_error(closed_port_endpoint: str, make_runtime) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(InvocationFetchError, match="^Failed to fetch next Lambda invocation: "):
        make_runtime(closed_port_endpoint).process_next_event(lambda e: e)


def test_runtime_malformed_endpoint_raises_fetch_error(make_runtime) -> None:  # type: ignore[no-untyped-def]
    called = []

    with pytest.raises(InvocationFetchError, match="^Failed to fetch next Lambda invocation: .*notaport"):
        make_runtime("127.0.0.1:notaport").process_next_event(lambda e: called.append(e))

    assert called == []


def test_runtime_response_post_failure_is_reported_to_error_endpoint(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation(1, b'{ "Hello": "world!"}'), MockResponse(400), MockResponse(200))

    make_runtime(runtime_api.endpoint).process_next_event(lambda event: event)

    reqs = runtime_api.received
    assert [(r.method, r.path) for r in reqs] == [
        ("GET", NEXT_PATH),
        ("POST", _response_path(1)),
        ("POST", _error_path(1)),
    ]
    error = json.loads(reqs[2].body)
    assert error["errorMessage"].startswith("Error while calling the Lambda runtime API: ")
    assert "400 Bad Request" in error["errorMessage"]
    assert error["errorType"] == "ResponsePostError"
    assert isinstance(error["stackTrace"], list)

    out = make_runtime.diagnostics.getvalue()
    assert re.match(
        r"^Fatal error: Uncaught ResponsePostError: Error while calling the Lambda runtime API: .*400 Bad Request", out
    )


def test_runtime_response_post_failure_sequence_is_repeatable(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime = make_runtime(runtime_api.endpoint)
    for _ in range(2):
        runtime_api.enqueue(invocation(1, b'{"a": 1}'), MockResponse(400), MockResponse(200))
        runtime.process_next_event(lambda event: event)

    paths = [r.path for r in runtime_api.received]
    assert paths == [NEXT_PATH, _response_path(1), _error_path(1)] * 2


def test_runtime_unencodable_result_is_reported_without_response_post(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation(1, b'{ "Hello": "world!"}'), MockResponse(200))

    # lone surrogate：不是合法的 UTF-8 文本
    make_runtime(runtime_api.endpoint).process_next_event(lambda event: "\udcb11")

    reqs = runtime_api.received
    assert [(r.method, r.path) for r in reqs] == [("GET", NEXT_PATH), ("POST", _error_path(1))]
    error = json.loads(reqs[1].body)
    assert error["errorMessage"] == (
        "Failed encoding Lambda JSON response: Malformed UTF-8 characters, possibly incorrectly encoded"
    )
    assert error["errorType"] == "SerializationError"
    assert make_runtime.diagnostics.getvalue().startswith(
        "Fatal error: Uncaught SerializationError: Failed encoding Lambda JSON response: "
        "Malformed UTF-8 characters, possibly incorrectly encoded"
    )


def test_runtime_handler_exception_is_reported(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation("abc-123", b'{"n": 1}'), MockResponse(202))

    def handler(event):  # type: ignore[no-untyped-def]
        raise KeyError("missing field")

    make_runtime(runtime_api.endpoint).process_next_event(handler)

    reqs = runtime_api.received
    assert [(r.method, r.path) for r in reqs] == [("GET", NEXT_PATH), ("POST", _error_path("abc-123"))]
    error = json.loads(reqs[1].body)
    assert error["errorType"] == "KeyError"
    assert error["errorMessage"] == "'missing field'"
    assert error["stackTrace"][-1].endswith("{main}")
    assert any("handler" in frame for frame in error["stackTrace"])
    assert "Fatal error: Uncaught KeyError: 'missing field' in " in make_runtime.diagnostics.getvalue()


def test_runtime_error_post_failure_propagates(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation(7, b'{"n": 1}'), MockResponse(500))

    def handler(event):  # type: ignore[no-untyped-def]
        raise RuntimeError("boom")

    with pytest.raises(ResponsePostError, match="500 Internal Server Error"):
        make_runtime(runtime_api.endpoint).process_next_event(handler)

    assert [r.path for r in runtime_api.received] == [NEXT_PATH, _error_path(7)]


def test_runtime_invalid_json_event_is_reported_against_its_id(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(invocation("bad-json", b"{not json"), MockResponse(200))
    called = []

    make_runtime(runtime_api.endpoint).process_next_event(lambda e: called.append(e))

    assert called == []
    reqs = runtime_api.received
    assert [r.path for r in reqs] == [NEXT_PATH, _error_path("bad-json")]
    assert json.loads(reqs[1].body)["errorType"] == "InvalidPayloadError"


def test_runtime_follows_redirect_on_next(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    runtime_api.enqueue(
        MockResponse(302, {"Location": NEXT_PATH + "?redirected=1"}),
        invocation(5, b'"plain string event"'),
        MockResponse(200),
    )

    make_runtime(runtime_api.endpoint).process_next_event(lambda event: event.upper())

    reqs = runtime_api.received
    assert [(r.method, r.path) for r in reqs] == [
        ("GET", NEXT_PATH),
        ("GET", NEXT_PATH + "?redirected=1"),
        ("POST", _response_path(5)),
    ]
    assert json.loads(reqs[2].body) == "PLAIN STRING EVENT"


def test_runtime_sequential_invocations_alternate_get_post(runtime_api: MockRuntimeApi, make_runtime) -> None:  # type: ignore[no-untyped-def]
    max_events = 10
    ids = [uuid.uuid4().hex for _ in range(max_events)]
    for i, inv_id in enumerate(ids, start=1):
        runtime_api.enqueue(invocation(inv_id, f'{{ "i": "{i}"}}'.encode()), MockResponse(200))

    runtime = make_runtime(runtime_api.endpoint)
    for _ in range(max_events):
        runtime.process_next_event(lambda event: {"n": event["i"]})

    reqs = runtime_api.received
    assert len(reqs) == 2 * max_events
    for i, inv_id in enumerate(ids):
        get, post = reqs[2 * i], reqs[2 * i + 1]
        assert (get.method, get.path) == ("GET", NEXT_PATH)
        assert (post.method, post.path) == ("POST", _response_path(inv_id))
        assert json.loads(post.body) == {"n": str(i + 1)}
