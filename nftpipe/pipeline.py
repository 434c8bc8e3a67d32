from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, Iterable, Iterator, List, Optional
from urllib.parse import urlparse

import anyio
import asyncer
from pydantic import BaseModel, ConfigDict, Field, field_validator

from nftpipe.exceptions import MetadataUploadError, NFTPipelineError
from nftpipe.http import HttpClient
from nftpipe.image_generation import GeneratedImage, ImageGenerationModel, load_image_model
from nftpipe.metadata import MetadataBuilder, NFTAttribute, NFTMetadata
from nftpipe.settings import PipelineSettings
from nftpipe.sources import PathSource, PromptSource, StoredImageSource, UrlSource, image_source_from
from nftpipe.storage import ContentStorage, UploadedAsset
from nftpipe.types import AspectRatio, ImageQuality, ImageStyle, StorageServiceName
from nftpipe.utils import current_millis, derive_file_name, ipfs_uri

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RESOLVING_IMAGE = 'resolving-image'
    UPLOADING_IMAGE = 'uploading-image'
    BUILDING_METADATA = 'building-metadata'
    DONE = 'done'
    FAILED = 'failed'


STAGE_NAMES: Dict[PipelineState, str] = {
    PipelineState.RESOLVING_IMAGE: 'image-generation',
    PipelineState.UPLOADING_IMAGE: 'image-upload',
    PipelineState.BUILDING_METADATA: 'metadata-upload',
}


def check_http_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parsed_url = urlparse(value)
    if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
        raise ValueError(f'invalid url: {value}')
    return value


class PackageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    prompt: Optional[str] = Field(default=None, description='Generate image from this prompt')
    image_url: Optional[str] = Field(default=None, alias='imageUrl', description='Use existing image URL')
    image_path: Optional[str] = Field(default=None, alias='imagePath', description='Use local image file')
    style: Optional[ImageStyle] = Field(default=None, description='Image generation style')
    aspect_ratio: AspectRatio = Field(default='1:1', alias='aspectRatio', description='Image aspect ratio')
    quality: ImageQuality = Field(default='high', description='Image quality')
    name: str = Field(description='NFT name')
    description: str = Field(description='NFT description')
    external_url: Optional[str] = Field(default=None, description='External URL')
    attributes: Optional[List[NFTAttribute]] = Field(default=None, description='NFT traits')
    properties: Optional[Dict[str, Any]] = Field(default=None, description='Custom properties')
    ipfs_service: Optional[StorageServiceName] = Field(default=None, alias='ipfsService', description='IPFS service')
    ipfs_api_key: Optional[str] = Field(default=None, alias='ipfsApiKey', description='Override IPFS API key')

    check_urls = field_validator('image_url', 'external_url')(check_http_url)


class PackageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_upload: UploadedAsset
    metadata_upload: UploadedAsset
    metadata: NFTMetadata
    generated_prompt: Optional[str] = None

    @property
    def ipfs_image_url(self) -> str:
        return ipfs_uri(self.image_upload.cid)

    @property
    def ipfs_metadata_url(self) -> str:
        return ipfs_uri(self.metadata_upload.cid)


@contextmanager
def pipeline_stage(run_id: str, state: PipelineState, image_cid: str | None = None) -> Iterator[None]:
    """Tags any pipeline error raised inside the block with the stage name and re-raises it."""
    logger.info(f'[{run_id}] {state.value}')
    try:
        yield
    except NFTPipelineError as e:
        e.stage = STAGE_NAMES[state]
        if isinstance(e, MetadataUploadError):
            e.image_cid = image_cid
        logger.warning(f'[{run_id}] {PipelineState.FAILED.value}: {e}')
        raise


class NFTPipeline:
    """
    Builds a complete NFT asset package: resolve the image (generating it from a prompt when asked),
    pin it, then build and pin the metadata document that references it.

    Stages run strictly in order because each one needs the previous one's output. A failed stage
    aborts the run, and whatever was already pinned stays pinned.
    """

    def __init__(
        self,
        image_model: ImageGenerationModel,
        storage: ContentStorage,
        metadata_builder: MetadataBuilder | None = None,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self.image_model = image_model
        self.storage = storage
        self.metadata_builder = metadata_builder or MetadataBuilder(storage)
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: PipelineSettings, http_client: HttpClient | None = None) -> NFTPipeline:
        http_client = http_client or settings.create_http_client()
        return cls(
            image_model=load_image_model(settings, http_client=http_client),
            storage=ContentStorage.from_settings(settings, http_client=http_client),
        )

    def _file_name(self, request: PackageRequest) -> str:
        return derive_file_name(request.name or request.prompt or '', self.clock())

    def _build_metadata(self, request: PackageRequest, image_upload: UploadedAsset) -> NFTMetadata:
        return self.metadata_builder.build(
            name=request.name,
            description=request.description,
            image_cid=image_upload.cid,
            external_url=request.external_url,
            attributes=request.attributes,
            properties=request.properties,
        )

    @staticmethod
    def _image_source(request: PackageRequest) -> PromptSource | UrlSource | PathSource:
        return image_source_from(
            prompt=request.prompt,
            image_url=request.image_url,
            image_path=request.image_path,
            style=request.style,
            aspect_ratio=request.aspect_ratio,
            quality=request.quality,
        )

    @staticmethod
    def _generation_options(source: PromptSource) -> dict[str, Any]:
        options = source.model_dump(include={'style', 'aspect_ratio', 'quality', 'seed', 'model'})
        return {k: v for k, v in options.items() if v is not None}

    def _upload_image(
        self, request: PackageRequest, source: StoredImageSource, generated: GeneratedImage | None
    ) -> UploadedAsset:
        file_name = self._file_name(request)
        if generated is not None and generated.content is not None:
            return self.storage.upload_bytes(generated.content, file_name, request.ipfs_service, request.ipfs_api_key)
        return self.storage.upload(source, file_name, request.ipfs_service, request.ipfs_api_key)

    async def _async_upload_image(
        self, request: PackageRequest, source: StoredImageSource, generated: GeneratedImage | None
    ) -> UploadedAsset:
        file_name = self._file_name(request)
        if generated is not None and generated.content is not None:
            return await self.storage.async_upload_bytes(
                generated.content, file_name, request.ipfs_service, request.ipfs_api_key
            )
        return await self.storage.async_upload(source, file_name, request.ipfs_service, request.ipfs_api_key)

    def build(self, request: PackageRequest) -> PackageResult:
        source = self._image_source(request)
        run_id = uuid.uuid4().hex[:8]
        generated: GeneratedImage | None = None

        with pipeline_stage(run_id, PipelineState.RESOLVING_IMAGE):
            if isinstance(source, PromptSource):
                generated = self.image_model.generate(source.prompt, **self._generation_options(source))
                stored_source: StoredImageSource = generated.to_source()
            else:
                stored_source = source

        with pipeline_stage(run_id, PipelineState.UPLOADING_IMAGE):
            try:
                image_upload = self._upload_image(request, stored_source, generated)
            finally:
                # temp files written by a provider never outlive the run
                if generated is not None and generated.local_path:
                    Path(generated.local_path).unlink(missing_ok=True)

        metadata = self._build_metadata(request, image_upload)
        with pipeline_stage(run_id, PipelineState.BUILDING_METADATA, image_cid=image_upload.cid):
            metadata_upload = self.metadata_builder.upload(metadata, request.ipfs_service, request.ipfs_api_key)

        logger.info(f'[{run_id}] {PipelineState.DONE.value}: image {image_upload.cid}, metadata {metadata_upload.cid}')
        return PackageResult(
            image_upload=image_upload,
            metadata_upload=metadata_upload,
            metadata=metadata,
            generated_prompt=generated.prompt if generated else None,
        )

    async def async_build(self, request: PackageRequest) -> PackageResult:
        source = self._image_source(request)
        run_id = uuid.uuid4().hex[:8]
        generated: GeneratedImage | None = None

        with pipeline_stage(run_id, PipelineState.RESOLVING_IMAGE):
            if isinstance(source, PromptSource):
                generated = await self.image_model.async_generate(source.prompt, **self._generation_options(source))
                stored_source: StoredImageSource = generated.to_source()
            else:
                stored_source = source

        with pipeline_stage(run_id, PipelineState.UPLOADING_IMAGE):
            try:
                image_upload = await self._async_upload_image(request, stored_source, generated)
            finally:
                if generated is not None and generated.local_path:
                    await anyio.Path(generated.local_path).unlink(missing_ok=True)

        metadata = self._build_metadata(request, image_upload)
        with pipeline_stage(run_id, PipelineState.BUILDING_METADATA, image_cid=image_upload.cid):
            metadata_upload = await self.metadata_builder.async_upload(
                metadata, request.ipfs_service, request.ipfs_api_key
            )

        logger.info(f'[{run_id}] {PipelineState.DONE.value}: image {image_upload.cid}, metadata {metadata_upload.cid}')
        return PackageResult(
            image_upload=image_upload,
            metadata_upload=metadata_upload,
            metadata=metadata,
            generated_prompt=generated.prompt if generated else None,
        )

    async def async_batch_build(self, requests: Iterable[PackageRequest]) -> AsyncGenerator[PackageResult, None]:
        async with asyncer.create_task_group() as task_group:
            soon_values: list[asyncer.SoonValue[PackageResult]] = []
            for request in requests:
                soon_value = task_group.soonify(self.async_build)(request)
                soon_values.append(soon_value)
            for soon_value in soon_values:
                while not soon_value.ready:
                    await anyio.sleep(0.01)
                yield soon_value.value
