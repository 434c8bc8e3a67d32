from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Type

import anyio
import httpx

from nftpipe.exceptions import FetchError, ImageFileError, UploadError
from nftpipe.http import HttpClient, http_error_details
from nftpipe.settings import PipelineSettings
from nftpipe.sources import PathSource, StoredImageSource, UrlSource
from nftpipe.storage.base import RemoteStorageBackend, StorageBackend, UploadedAsset
from nftpipe.storage.services import NFTStorage, PinataStorage, Web3Storage
from nftpipe.types import StorageServiceName
from nftpipe.utils import DEFAULT_FILE_NAME, infer_file_name_from_path, infer_file_name_from_url

logger = logging.getLogger(__name__)

StorageBackends: list[Type[RemoteStorageBackend]] = [PinataStorage, NFTStorage, Web3Storage]

StorageBackendRegistry: dict[str, Type[RemoteStorageBackend]] = {
    backend_cls.service_name: backend_cls for backend_cls in StorageBackends
}


def resolve_file_name(source: StoredImageSource, file_name: str | None = None) -> str:
    """
    An explicit `file_name` wins. Otherwise a URL contributes its last path segment when it has an
    extension, a local path contributes its base name, and anything else falls back to `image.png`.
    """
    if file_name:
        return file_name
    if isinstance(source, UrlSource):
        inferred = infer_file_name_from_url(source.url)
    else:
        inferred = infer_file_name_from_path(source.path)
    return inferred or DEFAULT_FILE_NAME


class ContentStorage:
    """
    Uploads image or document bytes to the selected IPFS pinning service.

    Checks run credential first, then byte resolution, then the upload itself, so configuration
    problems surface before any network call.
    """

    def __init__(
        self,
        backends: Mapping[str, StorageBackend],
        settings: PipelineSettings,
        http_client: HttpClient | None = None,
    ) -> None:
        self.backends = dict(backends)
        self.settings = settings
        self.http_client = http_client or settings.create_http_client()

    @classmethod
    def from_settings(cls, settings: PipelineSettings, http_client: HttpClient | None = None) -> ContentStorage:
        http_client = http_client or settings.create_http_client()
        backends = {
            service: backend_cls(settings.storage_settings(service), http_client=http_client)  # type: ignore
            for service, backend_cls in StorageBackendRegistry.items()
        }
        return cls(backends, settings=settings, http_client=http_client)

    def resolve_service(self, service: StorageServiceName | None = None) -> StorageServiceName:
        return service or self.settings.ipfs_service

    def resolve_credential(self, service: StorageServiceName, credential: str | None = None) -> str:
        return self.settings.storage_settings(service).resolve_api_key(credential)

    def _backend(self, service: StorageServiceName) -> StorageBackend:
        try:
            return self.backends[service]
        except KeyError as e:
            raise UploadError(f'Unsupported IPFS service: {service}', service=service) from e

    def read_source(self, source: StoredImageSource) -> bytes:
        if isinstance(source, UrlSource):
            try:
                return self.http_client.get({'url': source.url}).content
            except httpx.HTTPError as e:
                raise self._fetch_error(source, e) from e
        try:
            return Path(source.path).read_bytes()
        except OSError as e:
            raise self._file_error(source, e) from e

    async def async_read_source(self, source: StoredImageSource) -> bytes:
        if isinstance(source, UrlSource):
            try:
                response = await self.http_client.async_get({'url': source.url})
            except httpx.HTTPError as e:
                raise self._fetch_error(source, e) from e
            return response.content
        try:
            return await anyio.Path(source.path).read_bytes()
        except OSError as e:
            raise self._file_error(source, e) from e

    @staticmethod
    def _fetch_error(source: UrlSource, error: httpx.HTTPError) -> FetchError:
        status_code, body = http_error_details(error)
        if status_code is None:
            return FetchError(f'Failed to fetch image from {source.url}: {error}', url=source.url)
        return FetchError(
            f'Failed to fetch image from {source.url} ({status_code}): {body}',
            url=source.url,
            status_code=status_code,
            body=body,
        )

    @staticmethod
    def _file_error(source: PathSource, error: OSError) -> ImageFileError:
        return ImageFileError(f'Failed to read image file {source.path}: {error.strerror or error}', path=source.path)

    def upload(
        self,
        source: StoredImageSource,
        file_name: str | None = None,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        service = self.resolve_service(service)
        credential = self.resolve_credential(service, credential)
        content = self.read_source(source)
        return self._upload_content(content, resolve_file_name(source, file_name), service, credential)

    async def async_upload(
        self,
        source: StoredImageSource,
        file_name: str | None = None,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        service = self.resolve_service(service)
        credential = self.resolve_credential(service, credential)
        content = await self.async_read_source(source)
        return await self._async_upload_content(content, resolve_file_name(source, file_name), service, credential)

    def upload_bytes(
        self,
        content: bytes,
        file_name: str,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        service = self.resolve_service(service)
        credential = self.resolve_credential(service, credential)
        return self._upload_content(content, file_name, service, credential)

    async def async_upload_bytes(
        self,
        content: bytes,
        file_name: str,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        service = self.resolve_service(service)
        credential = self.resolve_credential(service, credential)
        return await self._async_upload_content(content, file_name, service, credential)

    def _upload_content(self, content: bytes, file_name: str, service: StorageServiceName, credential: str) -> UploadedAsset:
        logger.info(f'Uploading {file_name} ({len(content)} bytes) to {service}')
        asset = self._backend(service).upload(content, file_name, credential)
        return self._check_asset(asset, service)

    async def _async_upload_content(
        self, content: bytes, file_name: str, service: StorageServiceName, credential: str
    ) -> UploadedAsset:
        logger.info(f'Uploading {file_name} ({len(content)} bytes) to {service}')
        asset = await self._backend(service).async_upload(content, file_name, credential)
        return self._check_asset(asset, service)

    @staticmethod
    def _check_asset(asset: UploadedAsset, service: StorageServiceName) -> UploadedAsset:
        if not asset.cid:
            raise UploadError(f'No CID returned from {service}', service=service)
        logger.info(f'Stored {asset.file_name} on {service} as {asset.cid}')
        return asset
