from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from nftpipe.exceptions import MetadataUploadError, UploadError
from nftpipe.storage import ContentStorage, UploadedAsset
from nftpipe.types import StorageServiceName
from nftpipe.utils import ipfs_uri

logger = logging.getLogger(__name__)

METADATA_FILE_NAME = 'metadata.json'


class NFTAttribute(BaseModel):
    trait_type: str
    value: Union[str, int, float]


class NFTMetadata(BaseModel):
    """ERC-721 / OpenSea style token metadata. `image_reference` is serialized as `image`."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    image_reference: str = Field(alias='image')
    external_url: Optional[str] = None
    attributes: List[NFTAttribute] = []
    properties: Dict[str, Any] = {}

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_document(), indent=2, ensure_ascii=False).encode('utf-8')


class MetadataBuilder:
    def __init__(self, storage: ContentStorage) -> None:
        self.storage = storage

    @staticmethod
    def build(
        name: str,
        description: str,
        image_cid: str,
        external_url: str | None = None,
        attributes: Sequence[NFTAttribute | dict[str, Any]] | None = None,
        properties: dict[str, Any] | None = None,
    ) -> NFTMetadata:
        # always the content address, never a gateway url, so the document stays gateway agnostic
        return NFTMetadata(
            name=name,
            description=description,
            image=ipfs_uri(image_cid),
            external_url=external_url,
            attributes=[NFTAttribute.model_validate(i) for i in attributes or []],
            properties=dict(properties or {}),
        )

    def upload(
        self,
        metadata: NFTMetadata,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        try:
            return self.storage.upload_bytes(metadata.to_json_bytes(), METADATA_FILE_NAME, service, credential)
        except UploadError as e:
            raise self._metadata_upload_error(metadata, e) from e

    async def async_upload(
        self,
        metadata: NFTMetadata,
        service: StorageServiceName | None = None,
        credential: str | None = None,
    ) -> UploadedAsset:
        try:
            return await self.storage.async_upload_bytes(metadata.to_json_bytes(), METADATA_FILE_NAME, service, credential)
        except UploadError as e:
            raise self._metadata_upload_error(metadata, e) from e

    @staticmethod
    def _metadata_upload_error(metadata: NFTMetadata, error: UploadError) -> MetadataUploadError:
        logger.warning(f'Metadata upload for {metadata.name!r} failed: {error}')
        return MetadataUploadError(
            f'Metadata upload failed: {error}',
            metadata=metadata,
            service=error.service,
            status_code=error.status_code,
            body=error.body,
        )
