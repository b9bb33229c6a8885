# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import hashlib
import logging

import httpx
import pytest

from resilienthttp.config import HttpSettings
from resilienthttp.errors import (
    DecodeError,
    HttpStatusError,
    RequestTimeoutError,
    RequestValidationError,
    ServiceUnavailableError,
    TransportError,
)
from resilienthttp.http.adapters import OpenFailure, ScriptedResponse, ScriptedTransport
from resilienthttp.http.executor import RequestExecutor
from resilienthttp.http.models import HttpMethod, RequestSpec, Target
from resilienthttp.http.tls import FingerprintVerifier, PeerCertificate, format_fingerprint

HTTP_TARGET = Target("http", "example.com")
HTTPS_TARGET = Target("https", "secure.example.com")
JSON = {"Content-Type": "application/json"}


def make_executor(script, **kwargs):
    transport = ScriptedTransport(script, **kwargs)
    return RequestExecutor(transport, settings=HttpSettings(user_agent="UA/1.0")), transport


def make_spec(**kwargs):
    kwargs.setdefault("target", HTTP_TARGET)
    return RequestSpec(**kwargs)


@pytest.mark.asyncio
@pytest.mark.parametrize("entry", [ScriptedResponse(200, body="ok"), ScriptedResponse(500), httpx.ConnectError("refused")])
async def test_single_attempt_without_retries(entry):
    executor, transport = make_executor([entry, ScriptedResponse(200)])
    await executor.execute(make_spec(max_retries=0))
    assert transport.calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(("max_retries", "failures"), [(1, 1), (3, 2), (4, 0), (2, 2)])
async def test_succeeds_after_k_failures(max_retries, failures):
    script = [ScriptedResponse(503)] * failures + [ScriptedResponse(200, body='{"key": "value"}', headers=JSON)]
    executor, transport = make_executor(script)

    err, response = await executor.execute(make_spec(max_retries=max_retries))

    assert err is None
    assert response.data == {"key": "value"}
    assert response.meta["retry_count"] == failures
    assert transport.calls == failures + 1


@pytest.mark.asyncio
async def test_always_failing_status_exhausts_budget():
    executor, transport = make_executor([ScriptedResponse(404, body="missing", headers={"Content-Type": "text/plain"})])

    err, response = await executor.execute(make_spec(max_retries=4))

    assert response is None
    assert isinstance(err, HttpStatusError)
    assert err.status_code == 404
    assert err.data == "missing"
    assert err.response.meta["retry_count"] == 4
    assert transport.calls == 5


@pytest.mark.asyncio
async def test_terminal_error_reflects_last_failure_kind():
    executor, transport = make_executor([httpx.ReadTimeout("slow"), ScriptedResponse(502)])
    err, _ = await executor.execute(make_spec(max_retries=1))
    assert isinstance(err, HttpStatusError)
    assert err.status_code == 502
    assert transport.calls == 2

    executor, transport = make_executor([ScriptedResponse(502), httpx.ReadTimeout("slow")])
    err, _ = await executor.execute(make_spec(max_retries=1))
    assert isinstance(err, RequestTimeoutError)
    assert transport.calls == 2


@pytest.mark.asyncio
async def test_timeout_exhaustion_raises_typed_error():
    executor, transport = make_executor([httpx.ReadTimeout("slow")])
    err, response = await executor.execute(make_spec(max_retries=2))
    assert response is None
    assert isinstance(err, RequestTimeoutError)
    assert str(err) == "Failed due timeout reason"
    assert transport.calls == 3


@pytest.mark.asyncio
async def test_slow_response_times_out():
    executor, transport = make_executor([ScriptedResponse(400, body="end", delay=0.005)])
    err, _ = await executor.execute(make_spec(timeout=0.003))
    assert isinstance(err, RequestTimeoutError)
    assert str(err) == "Failed due timeout reason"
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_abort_exhaustion_raises_typed_error():
    executor, transport = make_executor([httpx.RemoteProtocolError("Server disconnected without sending a response.")])
    err, _ = await executor.execute(make_spec(max_retries=1))
    assert isinstance(err, ServiceUnavailableError)
    assert str(err) == "Failed due abort reason"
    assert transport.calls == 2


@pytest.mark.asyncio
async def test_transport_error_wraps_raw_exception():
    raw = httpx.ConnectError("connection refused")
    executor, transport = make_executor([raw])
    err, _ = await executor.execute(make_spec(max_retries=2))
    assert isinstance(err, TransportError)
    assert err.cause is raw
    assert transport.calls == 3


@pytest.mark.asyncio
async def test_mid_stream_failure_is_retried():
    broken = ScriptedResponse(200, body=b"partial", chunk_size=2, fail_after_chunks=httpx.ReadError("reset"))
    executor, transport = make_executor([broken, ScriptedResponse(200, body="complete")])
    err, response = await executor.execute(make_spec(max_retries=1))
    assert err is None
    assert response.data == "complete"
    assert transport.calls == 2


@pytest.mark.asyncio
async def test_retry_spacing_respects_delay():
    delay = 0.05
    executor, transport = make_executor([ScriptedResponse(500)])
    await executor.execute(make_spec(max_retries=2, retry_delay=delay))
    starts = [attempt.started_at for attempt in transport.attempts]
    assert len(starts) == 3
    for earlier, later in zip(starts, starts[1:]):
        assert later - earlier >= delay - 1e-3


@pytest.mark.asyncio
async def test_malformed_json_short_circuits_retries():
    executor, transport = make_executor([ScriptedResponse(200, body='st"}', headers=JSON), ScriptedResponse(200, body="{}", headers=JSON)])
    err, response = await executor.execute(make_spec(max_retries=3))
    assert response is None
    assert isinstance(err, DecodeError)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_malformed_json_on_error_status_is_not_retried():
    executor, transport = make_executor([ScriptedResponse(500, body="<html>", headers=JSON)])
    err, _ = await executor.execute(make_spec(max_retries=3))
    assert isinstance(err, DecodeError)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_unparseable_json_is_typed_decode_error(caplog):
    caplog.set_level(logging.ERROR, logger="resilienthttp")
    executor, transport = make_executor([ScriptedResponse(200, body="1" * 5000, headers=JSON)])
    err, response = await executor.execute(make_spec(max_retries=2))
    assert response is None
    assert isinstance(err, DecodeError)
    assert transport.calls == 1
    assert "Failed to parse data" in [record.getMessage() for record in caplog.records]


@pytest.mark.asyncio
async def test_empty_success_body_is_absent(caplog):
    caplog.set_level(logging.INFO, logger="resilienthttp")
    executor, _ = make_executor([ScriptedResponse(204, headers={"Content-Type": "text/plain"})])
    err, response = await executor.execute(make_spec())
    assert err is None
    assert response.status_code == 204
    assert response.data is None
    assert "No data in response" in [record.getMessage() for record in caplog.records]


@pytest.mark.asyncio
async def test_empty_error_body_without_retries_is_failure():
    executor, _ = make_executor([ScriptedResponse(500)])
    err, response = await executor.execute(make_spec())
    assert response is None
    assert isinstance(err, HttpStatusError)
    assert err.status_code == 500
    assert err.data is None


@pytest.mark.asyncio
async def test_open_time_exception_is_terminal():
    executor, transport = make_executor([OpenFailure(ValueError("bad request line")), ScriptedResponse(200)])
    err, _ = await executor.execute(make_spec(max_retries=3))
    assert isinstance(err, TransportError)
    assert isinstance(err.cause, ValueError)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_chunks_are_buffered_before_decoding():
    body = '{"key": "value", "items": [1, 2, 3]}'
    executor, _ = make_executor([ScriptedResponse(200, body=body, headers=JSON, chunk_size=3)])
    err, response = await executor.execute(make_spec())
    assert err is None
    assert response.data == {"key": "value", "items": [1, 2, 3]}
    assert response.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_binary_body_is_kept_as_bytes():
    data = bytes(range(16))
    executor, _ = make_executor([ScriptedResponse(200, body=data, headers={"Content-Type": "application/pdf"}, chunk_size=5)])
    _, response = await executor.execute(make_spec())
    assert response.data == data


@pytest.mark.asyncio
async def test_request_body_and_headers():
    executor, transport = make_executor([ScriptedResponse(200)])

    await executor.execute(make_spec(method=HttpMethod.POST, body={"a": "1", "b": ["x", "y"]}))
    form_request = transport.attempts[-1].request
    assert form_request.method == "POST"
    assert form_request.content == b"a=1&b=x&b=y"
    assert form_request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert form_request.headers["User-Agent"] == "UA/1.0"

    await executor.execute(make_spec(method=HttpMethod.PUT, body="raw", headers={"content-type": "text/plain", "user-agent": "Mine"}))
    raw_request = transport.attempts[-1].request
    assert raw_request.content == b"raw"
    assert raw_request.headers == {"content-type": "text/plain", "user-agent": "Mine"}


@pytest.mark.asyncio
async def test_retries_resend_same_request():
    executor, transport = make_executor([ScriptedResponse(500), ScriptedResponse(200)])
    await executor.execute(make_spec(method=HttpMethod.POST, body="payload", max_retries=1))
    first, second = (attempt.request for attempt in transport.attempts)
    assert first == second
    assert second.content == b"payload"


@pytest.mark.asyncio
async def test_unsupported_body_is_validation_error():
    executor, transport = make_executor([ScriptedResponse(200)])
    err, _ = await executor.execute(make_spec(method=HttpMethod.POST, body=12345))
    assert isinstance(err, RequestValidationError)
    assert transport.calls == 0


def test_fingerprint_bound_only_for_secure_targets():
    executor, _ = make_executor([ScriptedResponse(200)])
    assert executor.connection_config(make_spec(), "AA:BB").identity_check is None
    assert isinstance(executor.connection_config(make_spec(target=HTTPS_TARGET), "AA:BB").identity_check, FingerprintVerifier)
    assert executor.connection_config(make_spec(target=HTTPS_TARGET)).identity_check is None


@pytest.mark.asyncio
async def test_fingerprint_mismatch_surfaces_transport_error():
    cert = PeerCertificate.from_der(b"peer-cert")
    executor, transport = make_executor([ScriptedResponse(200, body="secret")], peer_certificate=cert)

    err, response = await executor.execute(make_spec(target=HTTPS_TARGET), "AA:BB:CC")

    assert response is None
    assert isinstance(err, TransportError)
    assert isinstance(err.cause, httpx.ConnectError)
    assert "does not match" in str(err)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_fingerprint_match_succeeds():
    der = b"peer-cert"
    cert = PeerCertificate.from_der(der)
    executor, _ = make_executor([ScriptedResponse(200, body="secret")], peer_certificate=cert)
    expected = format_fingerprint(hashlib.sha256(der).digest())

    err, response = await executor.execute(make_spec(target=HTTPS_TARGET), expected)

    assert err is None
    assert response.data == "secret"


@pytest.mark.asyncio
async def test_broken_logger_never_changes_result():
    class BrokenLogger:
        def log(self, *args, **kwargs):  # noqa: ARG002
            raise RuntimeError("log sink down")

    transport = ScriptedTransport([ScriptedResponse(500), ScriptedResponse(200)])
    executor = RequestExecutor(transport, settings=HttpSettings(), logger=BrokenLogger())
    err, response = await executor.execute(make_spec(max_retries=1))
    assert err is None
    assert response.status_code == 200
