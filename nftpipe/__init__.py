from nftpipe.exceptions import (
    AuthenticationError,
    ConfigurationError,
    FetchError,
    GenerationError,
    ImageFileError,
    InvalidRequestError,
    MetadataUploadError,
    NFTPipelineError,
    UnknownOperationError,
    UploadError,
)
from nftpipe.http import HttpClient
from nftpipe.image_generation import (
    GeneratedImage,
    HuggingFaceImageGeneration,
    ImageGenerationModel,
    OpenAIImageGeneration,
    PollinationsImageGeneration,
    load_image_model,
)
from nftpipe.metadata import MetadataBuilder, NFTAttribute, NFTMetadata
from nftpipe.operations import OperationRegistry, create_registry
from nftpipe.pipeline import NFTPipeline, PackageRequest, PackageResult, PipelineState
from nftpipe.settings import PipelineSettings
from nftpipe.sources import PathSource, PromptSource, UrlSource, image_source_from
from nftpipe.storage import ContentStorage, NFTStorage, PinataStorage, UploadedAsset, Web3Storage
from nftpipe.utils import slugify

__version__ = '1.0.0'

__all__ = [
    'NFTPipeline',
    'PackageRequest',
    'PackageResult',
    'PipelineState',
    'PipelineSettings',
    'HttpClient',
    'GeneratedImage',
    'ImageGenerationModel',
    'PollinationsImageGeneration',
    'OpenAIImageGeneration',
    'HuggingFaceImageGeneration',
    'load_image_model',
    'ContentStorage',
    'UploadedAsset',
    'PinataStorage',
    'NFTStorage',
    'Web3Storage',
    'MetadataBuilder',
    'NFTMetadata',
    'NFTAttribute',
    'PromptSource',
    'UrlSource',
    'PathSource',
    'image_source_from',
    'OperationRegistry',
    'create_registry',
    'slugify',
    'NFTPipelineError',
    'InvalidRequestError',
    'ConfigurationError',
    'GenerationError',
    'FetchError',
    'ImageFileError',
    'UploadError',
    'AuthenticationError',
    'MetadataUploadError',
    'UnknownOperationError',
]
