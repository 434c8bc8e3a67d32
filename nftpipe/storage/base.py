from __future__ import annotations

import logging
import mimetypes
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict

import httpx
from httpx import Response
from pydantic import BaseModel, ConfigDict

from nftpipe.exceptions import AuthenticationError, UploadError
from nftpipe.http import HttpClient, MultipartPostRequest, http_error_details
from nftpipe.platforms.base import PlatformSettings
from nftpipe.types import StorageServiceName
from nftpipe.utils import ipfs_uri, is_valid_cid

logger = logging.getLogger(__name__)


class UploadedAsset(BaseModel):
    model_config = ConfigDict(frozen=True)

    cid: str
    gateway_url: str
    service: StorageServiceName
    file_name: str

    @property
    def ipfs_url(self) -> str:
        return ipfs_uri(self.cid)


class StorageBackend(ABC):
    service_name: ClassVar[StorageServiceName]

    @abstractmethod
    def upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        ...

    @abstractmethod
    async def async_upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        ...


class RemoteStorageBackend(StorageBackend):
    """
    A storage service that accepts a multipart `file` upload authenticated by a bearer token.

    Subclasses declare where the CID lives in the response body.
    """

    extra_form_fields: ClassVar[Dict[str, str]] = {}

    def __init__(self, settings: PlatformSettings, http_client: HttpClient | None = None) -> None:
        self.settings = settings
        self.http_client = http_client or HttpClient()

    @property
    def upload_api(self) -> str:
        return self.settings.upload_api  # type: ignore

    @property
    def gateway_base(self) -> str:
        return self.settings.gateway_base  # type: ignore

    @abstractmethod
    def _extract_cid(self, response_data: Any) -> Any:
        ...

    def _get_request_parameters(self, content: bytes, file_name: str, credential: str) -> MultipartPostRequest:
        content_type = mimetypes.guess_type(file_name)[0] or 'application/octet-stream'
        request_parameters: MultipartPostRequest = {
            'url': self.upload_api,
            'files': {'file': (file_name, content, content_type)},
            'headers': {'Authorization': f'Bearer {credential}'},
        }
        if self.extra_form_fields:
            request_parameters['data'] = dict(self.extra_form_fields)
        return request_parameters

    def upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        request_parameters = self._get_request_parameters(content, file_name, credential)
        try:
            response = self.http_client.post_multipart(request_parameters)
        except httpx.HTTPError as e:
            raise self._upload_error(e) from e
        return self._construct_asset(response, file_name)

    async def async_upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        request_parameters = self._get_request_parameters(content, file_name, credential)
        try:
            response = await self.http_client.async_post_multipart(request_parameters)
        except httpx.HTTPError as e:
            raise self._upload_error(e) from e
        return self._construct_asset(response, file_name)

    def _upload_error(self, error: httpx.HTTPError) -> UploadError:
        status_code, body = http_error_details(error)
        service = self.service_name
        if status_code == 401:
            return AuthenticationError(
                f'{service} authentication failed (401): check that the credential is correct and not expired. '
                f'Response: {body}',
                service=service,
                status_code=status_code,
                body=body,
            )
        if status_code == 403:
            return AuthenticationError(
                f'{service} authentication failed (403): ensure the credential has write permission. Response: {body}',
                service=service,
                status_code=status_code,
                body=body,
            )
        if status_code is None:
            return UploadError(f'IPFS upload to {service} failed: {error}', service=service)
        return UploadError(
            f'IPFS upload to {service} failed ({status_code}): {body}', service=service, status_code=status_code, body=body
        )

    def _construct_asset(self, response: Response, file_name: str) -> UploadedAsset:
        try:
            cid = self._extract_cid(response.json())
        except (ValueError, KeyError, TypeError):
            cid = None
        if not isinstance(cid, str) or not is_valid_cid(cid):
            raise UploadError(
                f'No valid CID returned from {self.service_name}. Response: {response.text}',
                service=self.service_name,
                status_code=response.status_code,
                body=response.text,
            )
        logger.debug(f'{self.service_name} stored {file_name} as {cid}')
        return UploadedAsset(
            cid=cid,
            gateway_url=f'{self.gateway_base}{cid}',
            service=self.service_name,
            file_name=file_name,
        )
