from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import httpx
from httpx import BaseTransport, Limits, Response
from typing_extensions import Required, TypedDict

from nftpipe.types import PrimitiveData

logger = logging.getLogger(__name__)

QueryParams = Mapping[str, Union[PrimitiveData, Sequence[PrimitiveData]]]
Headers = Dict[str, str]
# (file name, content, content type)
FileField = Tuple[str, bytes, str]

DEFAULT_LIMITS = Limits(max_connections=100, max_keepalive_connections=20, keepalive_expiry=600)


class GetRequest(TypedDict, total=False):
    url: Required[str]
    params: QueryParams
    headers: Headers


class JsonPostRequest(TypedDict, total=False):
    url: Required[str]
    json: Required[Any]
    headers: Required[Headers]
    params: QueryParams


class MultipartPostRequest(TypedDict, total=False):
    url: Required[str]
    files: Required[Dict[str, FileField]]
    headers: Required[Headers]
    data: Dict[str, str]


def _checked(response: Response) -> Response:
    logger.debug(f'{response.request.method} {response.url} -> {response.status_code}')
    response.raise_for_status()
    return response


class HttpClient:
    """
    Sync and async httpx clients shared by every provider and storage service.

    Each call is a single attempt: a non-2xx answer raises `httpx.HTTPStatusError`, a network failure or
    timeout raises the matching `httpx.TransportError`. Callers translate both into domain errors.

    Args:
        timeout (float | None, optional): Per-request timeout in seconds. Defaults to 60.
        transport (BaseTransport | None, optional): Transport for both clients, e.g. `httpx.MockTransport`.
        limits (Limits | None, optional): Connection pool limits.
    """

    def __init__(
        self,
        timeout: Optional[float] = 60,
        transport: BaseTransport | None = None,
        limits: Limits | None = None,
    ) -> None:
        self.timeout = timeout
        self.limits = limits or DEFAULT_LIMITS
        self.client = httpx.Client(transport=transport, timeout=timeout, limits=self.limits, follow_redirects=True)
        self.async_client = httpx.AsyncClient(
            transport=transport,  # type: ignore
            timeout=timeout,
            limits=self.limits,
            follow_redirects=True,
        )

    def get(self, request: GetRequest) -> Response:
        return _checked(self.client.get(**request))

    async def async_get(self, request: GetRequest) -> Response:
        return _checked(await self.async_client.get(**request))

    def post_json(self, request: JsonPostRequest) -> Response:
        return _checked(self.client.post(**request))

    async def async_post_json(self, request: JsonPostRequest) -> Response:
        return _checked(await self.async_client.post(**request))

    def post_multipart(self, request: MultipartPostRequest) -> Response:
        return _checked(self.client.post(**request))

    async def async_post_multipart(self, request: MultipartPostRequest) -> Response:
        return _checked(await self.async_client.post(**request))


def http_error_details(error: httpx.HTTPError) -> tuple[int | None, str | None]:
    """Returns the upstream status code and body of a failed request, when there was a response."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code, error.response.text
    return None, None
