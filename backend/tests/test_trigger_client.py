"""
MacroRelay Backend — Trigger Client Tests
===========================================

What:  Outbound calls to the trigger service, with httpx.MockTransport
       standing in for the network.

What we test:
    ✅ URL layout and percent-encoding of device id and action
    ✅ Query parameter rendering (booleans, null, nested JSON)
    ✅ 2xx answers returned; non-2xx answers carried verbatim in UpstreamError
    ✅ Timeout → 504, connection failure → 502
    ✅ Redirects are not followed or relayed → 502
"""

import httpx
import pytest

from app.exceptions import UpstreamError
from app.services.trigger_client import encode_params, format_param_value

TRIGGER_BASE_URL = "https://trigger.test"


class TestParamFormatting:

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, "true"),
            (False, "false"),
            (None, "null"),
            (3, "3"),
            (1.5, "1.5"),
            ("on", "on"),
            ({"a": 1, "b": [1, 2]}, '{"a":1,"b":[1,2]}'),
            ([1, "x"], '[1,"x"]'),
        ],
    )
    def test_format_param_value(self, value, expected):
        assert format_param_value(value) == expected

    def test_encode_params_keeps_order(self):
        assert encode_params({"z": 1, "a": True}) == [("z", "1"), ("a", "true")]

    def test_encode_params_empty(self):
        assert encode_params(None) == []
        assert encode_params({}) == []


class TestTrigger:

    @pytest.mark.asyncio
    async def test_success_returns_upstream_answer(self, make_trigger_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"ok", headers={"content-type": "text/plain"})

        client = make_trigger_client(handler)
        result = await client.trigger("dev-1", "lights_on", {"level": 80, "fade": False})

        assert result.status_code == 200
        assert result.body == b"ok"
        assert result.content_type == "text/plain"

        request = seen[0]
        assert request.method == "GET"
        assert str(request.url).startswith(f"{TRIGGER_BASE_URL}/dev-1/lights_on?")
        assert dict(request.url.params) == {"level": "80", "fade": "false"}

    @pytest.mark.asyncio
    async def test_path_segments_are_percent_encoded(self, make_trigger_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        client = make_trigger_client(handler)
        await client.trigger("dev 1", "a/b?c")

        assert seen[0].url.raw_path == b"/dev%201/a%2Fb%3Fc"

    @pytest.mark.asyncio
    async def test_no_params_sends_no_query(self, make_trigger_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        await make_trigger_client(handler).trigger("dev-1", "ping")

        assert seen[0].url.query == b""

    @pytest.mark.asyncio
    async def test_non_2xx_is_carried_verbatim(self, make_trigger_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                429,
                content=b'{"error":"slow down"}',
                headers={"content-type": "application/json"},
            )

        with pytest.raises(UpstreamError) as exc_info:
            await make_trigger_client(handler).trigger("dev-1", "lights_on")

        exc = exc_info.value
        assert exc.passthrough is True
        assert exc.status_code == 429
        assert exc.body == b'{"error":"slow down"}'
        assert exc.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_timeout_is_504(self, make_trigger_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            await make_trigger_client(handler).trigger("dev-1", "lights_on")

        assert exc_info.value.status_code == 504
        assert exc_info.value.passthrough is False

    @pytest.mark.asyncio
    async def test_connect_error_is_502(self, make_trigger_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            await make_trigger_client(handler).trigger("dev-1", "lights_on")

        assert exc_info.value.status_code == 502
        assert exc_info.value.passthrough is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [301, 302, 307])
    async def test_redirect_is_502(self, make_trigger_client, status):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(status, headers={"location": "https://elsewhere.test/"})

        with pytest.raises(UpstreamError) as exc_info:
            await make_trigger_client(handler).trigger("dev-1", "lights_on")

        exc = exc_info.value
        assert exc.status_code == 502
        assert exc.passthrough is False
        assert exc.context["redirect_status"] == status
        assert len(seen) == 1
