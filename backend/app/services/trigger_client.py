"""
MacroRelay Backend — Trigger Service Client
=============================================

What:  One-shot outbound calls to the external macro trigger service.
How:   GET {base_url}/{device_id}/{action}?<params>, using an httpx.AsyncClient
       created in the lifespan handler (timeout = TRIGGER_TIMEOUT_SECONDS) and
       closed at shutdown.

Failure policy:
    3xx response        → UpstreamError(502); redirects are not followed
    other non-2xx       → UpstreamError carrying status, body, content type
                          (passed through to our caller verbatim)
    timeout             → UpstreamError(504)
    other network error → UpstreamError(502)
    No retries: a trigger may have side effects in the physical world.

Query encoding:
    Parameters are sent in the order they are stored. Values are rendered as
    text: booleans as true/false, None as null, nested objects and lists as
    JSON, everything else with str().
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from app.exceptions import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerResult:
    status_code: int
    body: bytes
    content_type: Optional[str]


def format_param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def encode_params(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    if not params:
        return []
    return [(str(key), format_param_value(value)) for key, value in params.items()]


class TriggerClient:
    def __init__(self, http_client: httpx.AsyncClient, base_url: str):
        self._http = http_client
        self.base_url = base_url.rstrip("/")

    def build_url(self, device_id: str, action: str) -> str:
        return f"{self.base_url}/{quote(device_id, safe='')}/{quote(action, safe='')}"

    async def trigger(
        self,
        device_id: str,
        action: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> TriggerResult:
        """
        Fire `action` on `device_id`.

        Raises:
            UpstreamError: non-2xx answer, timeout, or network failure
        """
        url = self.build_url(device_id, action)
        query = encode_params(params)

        try:
            response = await self._http.get(url, params=query or None)
        except httpx.TimeoutException as e:
            logger.warning("Trigger %s/%s timed out: %s", device_id, action, e)
            raise UpstreamError(
                message="The trigger service did not respond in time",
                status_code=504,
                context={"device_id": device_id, "action": action},
            )
        except httpx.HTTPError as e:
            logger.warning("Trigger %s/%s failed: %s", device_id, action, e)
            raise UpstreamError(
                message="The trigger service could not be reached",
                status_code=502,
                context={"device_id": device_id, "action": action, "error_type": type(e).__name__},
            )

        if 300 <= response.status_code < 400:
            logger.warning(
                "Trigger %s/%s answered with redirect %d", device_id, action, response.status_code
            )
            raise UpstreamError(
                message="The trigger service answered with a redirect",
                status_code=502,
                context={
                    "device_id": device_id,
                    "action": action,
                    "redirect_status": response.status_code,
                },
            )

        content_type = response.headers.get("content-type")
        if not response.is_success:
            logger.warning(
                "Trigger %s/%s answered %d", device_id, action, response.status_code
            )
            raise UpstreamError(
                message=f"The trigger service answered {response.status_code}",
                status_code=response.status_code,
                body=response.content,
                content_type=content_type,
                context={"device_id": device_id, "action": action},
            )

        logger.info("Trigger %s/%s answered %d", device_id, action, response.status_code)
        return TriggerResult(
            status_code=response.status_code,
            body=response.content,
            content_type=content_type,
        )
