from __future__ import annotations

from typing import Type

from nftpipe.http import HttpClient
from nftpipe.image_generation.base import (
    GeneratedImage,
    ImageGenerationModel,
    ImageGenerationParameters,
    ImageGenerationParametersDict,
    ProviderInfo,
    RemoteImageGenerationModel,
)
from nftpipe.image_generation.models import (
    HuggingFaceImageGeneration,
    OpenAIImageGeneration,
    OpenAIImageGenerationParameters,
    PollinationsImageGeneration,
)
from nftpipe.settings import PipelineSettings

ImageGenerationModels: list[Type[RemoteImageGenerationModel]] = [
    PollinationsImageGeneration,
    OpenAIImageGeneration,
    HuggingFaceImageGeneration,
]

ImageGenerationModelRegistry: dict[str, Type[RemoteImageGenerationModel]] = {
    model_cls.provider: model_cls for model_cls in ImageGenerationModels
}


def load_image_model(settings: PipelineSettings, http_client: HttpClient | None = None) -> ImageGenerationModel:
    model_cls = ImageGenerationModelRegistry[settings.image_provider]
    platform_settings = getattr(settings, settings.image_provider)
    return model_cls(settings=platform_settings, http_client=http_client or settings.create_http_client())  # type: ignore


__all__ = [
    'GeneratedImage',
    'ImageGenerationModel',
    'ImageGenerationParameters',
    'ImageGenerationParametersDict',
    'RemoteImageGenerationModel',
    'PollinationsImageGeneration',
    'OpenAIImageGeneration',
    'OpenAIImageGenerationParameters',
    'HuggingFaceImageGeneration',
    'ProviderInfo',
    'ImageGenerationModels',
    'ImageGenerationModelRegistry',
    'load_image_model',
]
