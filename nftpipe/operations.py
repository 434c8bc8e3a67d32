from __future__ import annotations

import functools
import json
import logging
from collections import UserDict
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, MutableMapping, Optional, Type

import anyio
from docstring_parser import parse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing_extensions import Self, TypedDict

from nftpipe.exceptions import InvalidRequestError, UnknownOperationError
from nftpipe.metadata import NFTAttribute
from nftpipe.pipeline import NFTPipeline, PackageRequest, PackageResult, check_http_url
from nftpipe.sources import image_source_from
from nftpipe.types import AspectRatio, ImageQuality, ImageStyle, JsonSchema, StorageServiceName
from nftpipe.utils import derive_file_name, ipfs_uri

logger = logging.getLogger(__name__)

OPERATION_PREFIX = 'nft_pipeline_'


class TextContent(TypedDict):
    type: str
    text: str


class OperationResponse(TypedDict):
    content: List[TextContent]


class OperationJsonSchema(TypedDict):
    name: str
    description: str
    inputSchema: JsonSchema


class GenerateImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore', protected_namespaces=())

    prompt: str = Field(description='Text description of the image to generate')
    style: Optional[ImageStyle] = Field(default=None, description='Art style for the image')
    aspect_ratio: AspectRatio = Field(default='1:1', alias='aspectRatio', description='Image aspect ratio')
    quality: ImageQuality = Field(default='high', description='Generation quality')
    seed: Optional[int] = Field(default=None, description='Random seed for reproducible generation')
    model: Optional[str] = Field(default=None, description='Specific model to use (flux, turbo, etc.)')


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    image_url: Optional[str] = Field(default=None, alias='imageUrl', description='URL of image to upload')
    image_path: Optional[str] = Field(default=None, alias='imagePath', description='Local path to image file')
    file_name: Optional[str] = Field(
        default=None,
        alias='fileName',
        description="Filename for the upload. Defaults to the URL's or path's file name, otherwise image.png",
    )
    service: Optional[StorageServiceName] = Field(default=None, description='IPFS service to use')
    api_key: Optional[str] = Field(default=None, alias='apiKey', description='Override API key/JWT for the service')

    check_urls = field_validator('image_url')(check_http_url)


class CreateMetadataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    name: str = Field(description='NFT name')
    description: str = Field(description='NFT description')
    image_hash: str = Field(alias='imageHash', description='IPFS CID of the image')
    external_url: Optional[str] = Field(default=None, description='External URL for the NFT')
    attributes: Optional[List[NFTAttribute]] = Field(default=None, description='NFT attributes/traits')
    properties: Optional[Dict[str, Any]] = Field(default=None, description='Additional custom properties')
    service: Optional[StorageServiceName] = Field(default=None, description='IPFS service to use')
    api_key: Optional[str] = Field(default=None, alias='apiKey', description='Override API key/JWT')

    check_urls = field_validator('external_url')(check_http_url)


def recusive_remove(obj: Any, remove_key: str) -> None:
    """
    Recursively removes a key from a dictionary and all its nested dictionaries.

    Args:
        obj (Any): The object to remove the key from.
        remove_key (str): The key to remove.
    """
    if isinstance(obj, dict):
        for key in list(obj.keys()):
            if key == remove_key:
                del obj[key]
            else:
                recusive_remove(obj[key], remove_key)
    elif isinstance(obj, list):
        for item in obj:
            recusive_remove(item, remove_key)


def get_json_schema(name: str, request_model: Type[BaseModel], handler: Callable[..., Any]) -> OperationJsonSchema:
    docstring = parse(text=handler.__doc__ or '')
    parameters = request_model.model_json_schema(by_alias=True)
    recusive_remove(parameters, 'title')
    return {
        'name': name,
        'description': docstring.short_description or '',
        'inputSchema': parameters,
    }


def text_response(payload: Mapping[str, Any]) -> OperationResponse:
    return {'content': [{'type': 'text', 'text': json.dumps(payload, indent=2, ensure_ascii=False)}]}


class Operation:
    def __init__(
        self,
        name: str,
        request_model: Type[BaseModel],
        handler: Callable[[Any], Awaitable[Dict[str, Any]]],
    ) -> None:
        self.name = name
        self.request_model = request_model
        self.handler = handler
        self.json_schema: OperationJsonSchema = get_json_schema(name, request_model, handler)

    @property
    def description(self) -> str:
        return self.json_schema['description']

    @property
    def input_schema(self) -> JsonSchema:
        return self.json_schema['inputSchema']

    def parse_arguments(self, arguments: Mapping[str, Any] | None) -> BaseModel:
        try:
            return self.request_model.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise InvalidRequestError(f'Invalid arguments for {self.name}: {e}') from e

    async def __call__(self, arguments: Mapping[str, Any] | None) -> OperationResponse:
        request = self.parse_arguments(arguments)
        payload = await self.handler(request)
        return text_response(payload)


class OperationRegistry(UserDict, MutableMapping[str, Operation]):
    def get_operation(self, name: str) -> Operation:
        operation = self.data.get(name) or self.data.get(OPERATION_PREFIX + name)
        if operation is None:
            raise UnknownOperationError(name)
        return operation

    async def async_call(self, name: str, arguments: Mapping[str, Any] | None = None) -> OperationResponse:
        operation = self.get_operation(name)
        logger.info(f'Calling {operation.name}')
        return await operation(arguments)

    def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> OperationResponse:
        return anyio.run(functools.partial(self.async_call, name, arguments))

    def schemas(self) -> list[OperationJsonSchema]:
        return [operation.json_schema for operation in self.data.values()]

    @classmethod
    def from_iterable(cls, operations: Iterable[Operation]) -> Self:
        return cls({operation.name: operation for operation in operations})


def package_payload(result: PackageResult) -> dict[str, Any]:
    return {
        'success': True,
        'imageCid': result.image_upload.cid,
        'metadataCid': result.metadata_upload.cid,
        'imageUrl': result.image_upload.gateway_url,
        'metadataUrl': result.metadata_upload.gateway_url,
        'ipfsImageUrl': result.ipfs_image_url,
        'ipfsMetadataUrl': result.ipfs_metadata_url,
        'metadata': result.metadata.to_document(),
        'generatedPrompt': result.generated_prompt,
        'service': result.image_upload.service,
        'message': 'NFT package created successfully! Ready for minting.',
        'nextSteps': [
            'Use the metadataCid or ipfsMetadataUrl for NFT minting',
            'The metadata contains the image reference automatically',
        ],
    }


class PipelineOperations:
    """The four NFT pipeline operations, backed by one `NFTPipeline`."""

    def __init__(self, pipeline: NFTPipeline) -> None:
        self.pipeline = pipeline

    async def generate_image(self, request: GenerateImageRequest) -> dict[str, Any]:
        """
        Generate AI image for NFT using free APIs (Pollinations.ai, FLUX.1, Stable Diffusion)
        """
        options = request.model_dump(include={'style', 'aspect_ratio', 'quality', 'seed', 'model'}, exclude_none=True)
        image = await self.pipeline.image_model.async_generate(request.prompt, **options)
        suggested_file_name = derive_file_name(request.prompt, self.pipeline.clock())
        return {
            'success': True,
            'imageUrl': image.url,
            'localPath': image.local_path,
            'prompt': image.prompt,
            'model': image.model,
            'style': request.style,
            'aspectRatio': request.aspect_ratio,
            'cost': image.cost or 0,
            'suggestedFilename': suggested_file_name,
            'message': 'Image generated successfully (URL)' if image.url else 'Image generated successfully (local file)',
            'nextSteps': [
                'Use nft_pipeline_upload_to_ipfs to upload this image',
                'Or use nft_pipeline_build_complete for complete NFT preparation',
            ],
        }

    async def upload_to_ipfs(self, request: UploadRequest) -> dict[str, Any]:
        """
        Upload image to IPFS using Pinata, NFT.Storage, or Web3.Storage
        """
        if not request.image_url and not request.image_path:
            raise InvalidRequestError('Either imageUrl or imagePath must be provided')
        source = image_source_from(image_url=request.image_url, image_path=request.image_path)
        asset = await self.pipeline.storage.async_upload(
            source, request.file_name, request.service, request.api_key  # type: ignore
        )
        return {
            'success': True,
            'cid': asset.cid,
            'ipfsUrl': asset.ipfs_url,
            'gatewayUrl': asset.gateway_url,
            'service': asset.service,
            'fileName': asset.file_name,
            'message': 'Image uploaded to IPFS successfully',
        }

    async def create_metadata(self, request: CreateMetadataRequest) -> dict[str, Any]:
        """
        Create NFT metadata JSON and upload to IPFS
        """
        builder = self.pipeline.metadata_builder
        metadata = builder.build(
            name=request.name,
            description=request.description,
            image_cid=request.image_hash,
            external_url=request.external_url,
            attributes=request.attributes,
            properties=request.properties,
        )
        asset = await builder.async_upload(metadata, request.service, request.api_key)
        return {
            'success': True,
            'metadataCid': asset.cid,
            'ipfsUrl': ipfs_uri(asset.cid),
            'gatewayUrl': asset.gateway_url,
            'metadata': metadata.to_document(),
            'service': asset.service,
            'message': 'Metadata uploaded to IPFS successfully',
        }

    async def build_complete(self, request: PackageRequest) -> dict[str, Any]:
        """
        Complete NFT preparation pipeline: generate/upload image, create metadata, upload to IPFS.
        """
        result = await self.pipeline.async_build(request)
        return package_payload(result)


def create_registry(pipeline: NFTPipeline) -> OperationRegistry:
    operations = PipelineOperations(pipeline)
    return OperationRegistry.from_iterable(
        [
            Operation(OPERATION_PREFIX + 'generate_image', GenerateImageRequest, operations.generate_image),
            Operation(OPERATION_PREFIX + 'upload_to_ipfs', UploadRequest, operations.upload_to_ipfs),
            Operation(OPERATION_PREFIX + 'create_metadata', CreateMetadataRequest, operations.create_metadata),
            Operation(OPERATION_PREFIX + 'build_complete', PackageRequest, operations.build_complete),
        ]
    )
