"""
httpx-backed dispatch capability for the upstream REST API.
"""

from typing import Dict, Optional
from urllib.parse import urljoin

import httpx

from shared.errors import UpstreamError
from shared.logging import get_logger
from ..models import HttpResponse, RequestSpec


class HttpDispatcher:
    """Performs one upstream request and returns an ``HttpResponse``.

    Transport failures are raised as ``UpstreamError``; HTTP error statuses
    are returned, not raised.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.logger = get_logger("connect.http_dispatcher")

        headers = dict(default_headers or {})
        if user_agent:
            headers["User-Agent"] = user_agent
        self._headers = headers
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config, **kwargs) -> "HttpDispatcher":
        return cls(
            base_url=config.base_url,
            timeout=config.request_timeout_seconds,
            user_agent=config.user_agent or f"{config.server_name}/{config.server_version}",
            default_headers=config.custom_headers,
            **kwargs,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def _absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self.base_url, url.lstrip("/"))

    async def __call__(self, request: RequestSpec) -> HttpResponse:
        client = self._get_client()
        kwargs = {"params": request.params, "headers": request.headers}
        if isinstance(request.body, (dict, list)):
            kwargs["json"] = request.body
        elif request.body is not None:
            kwargs["content"] = request.body

        url = self._absolute_url(request.url)
        try:
            response = await client.request(request.method, url, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error("Upstream request failed", method=request.method, url=url, error=str(e))
            raise UpstreamError(
                "centerpoint",
                str(e) or type(e).__name__,
                details={"method": request.method, "url": url},
            ) from e

        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=_decode_body(response),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _decode_body(response: httpx.Response):
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
