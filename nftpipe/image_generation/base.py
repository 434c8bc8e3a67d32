from __future__ import annotations

import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Optional, get_type_hints

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self, TypedDict, Unpack

from nftpipe.http import HttpClient
from nftpipe.platforms.base import PlatformSettings
from nftpipe.sources import PathSource, UrlSource
from nftpipe.types import AspectRatio, ImageQuality, ImageStyle

logger = logging.getLogger(__name__)

STYLE_PROMPT_SUFFIXES: dict[str, str] = {
    'realistic': 'photorealistic, highly detailed, 8k photography',
    'artistic': 'artistic, painterly, fine art',
    'cartoon': 'cartoon style, vibrant colors, clean lines',
    'fantasy': 'fantasy art, magical, ethereal lighting',
    'cyberpunk': 'cyberpunk, neon lights, futuristic',
    'minimalist': 'minimalist, simple shapes, clean composition',
}
QUALITY_BASE_EDGE: dict[str, int] = {
    'standard': 512,
    'high': 1024,
    'ultra': 1536,
}


class ProviderInfo(BaseModel):
    provider: str
    model: str

    @property
    def model_id(self) -> str:
        return f'{self.provider}/{self.model}'


class GeneratedImage(BaseModel):
    """
    Where the provider left the image: a URL it serves, or a local file holding the bytes.

    `content` holds the bytes when the provider already sent them, so nothing has to download them again.
    """

    provider_info: ProviderInfo
    url: Optional[str] = None
    local_path: Optional[str] = None
    prompt: str
    cost: Optional[float] = None
    content: Optional[bytes] = Field(default=None, exclude=True, repr=False)

    @model_validator(mode='after')
    def _check_location(self) -> Self:
        if not self.url and not self.local_path:
            raise ValueError('generated image has neither url nor local_path')
        return self

    @property
    def model(self) -> str:
        return self.provider_info.model_id

    def to_source(self) -> UrlSource | PathSource:
        if self.url:
            return UrlSource(url=self.url)
        return PathSource(path=self.local_path)  # type: ignore


class ImageGenerationParameters(BaseModel):
    model_config = ConfigDict(validate_assignment=True, protected_namespaces=())

    style: Optional[ImageStyle] = None
    aspect_ratio: AspectRatio = '1:1'
    quality: ImageQuality = 'high'
    seed: Optional[int] = None
    model: Optional[str] = None

    def clone_with_changes(self, **changes: Any) -> Self:
        return self.__class__.model_validate({**self.model_dump(exclude_unset=True), **changes})


class ImageGenerationParametersDict(TypedDict, total=False):
    style: Optional[ImageStyle]
    aspect_ratio: AspectRatio
    quality: ImageQuality
    seed: Optional[int]
    model: Optional[str]


def apply_style(prompt: str, style: str | None) -> str:
    if style is None:
        return prompt
    return f'{prompt}, {STYLE_PROMPT_SUFFIXES[style]}'


def resolve_dimensions(aspect_ratio: str, quality: str) -> tuple[int, int]:
    """Long side is the quality's base edge, the short side is scaled to the ratio and snapped to 64px."""
    base_edge = QUALITY_BASE_EDGE[quality]
    ratio_width, ratio_height = (int(i) for i in aspect_ratio.split(':'))
    if ratio_width >= ratio_height:
        short_side = base_edge * ratio_height / ratio_width
        return base_edge, max(64, round(short_side / 64) * 64)
    short_side = base_edge * ratio_width / ratio_height
    return max(64, round(short_side / 64) * 64), base_edge


def save_image_bytes(content: bytes, suffix: str = '.png') -> str:
    with tempfile.NamedTemporaryFile(prefix='nftpipe-', suffix=suffix, delete=False) as f:
        f.write(content)
    logger.debug(f'Saved generated image to {f.name}')
    return str(Path(f.name))


class ImageGenerationModel(ABC):
    provider: ClassVar[str]

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @classmethod
    @abstractmethod
    def from_name(cls, name: str) -> Self:
        ...

    @abstractmethod
    def generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        ...

    @abstractmethod
    async def async_generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        ...

    @property
    def provider_info(self) -> ProviderInfo:
        return ProviderInfo(provider=self.provider, model=self.name)


class RemoteImageGenerationModel(ImageGenerationModel):
    settings: PlatformSettings
    http_client: HttpClient

    def __init__(
        self,
        parameters: ImageGenerationParameters,
        settings: PlatformSettings,
        http_client: HttpClient,
    ) -> None:
        self.parameters = parameters
        self.settings = settings
        self.http_client = http_client

    @classmethod
    def how_to_settings(cls) -> str:
        return f'{cls.__name__} Settings\n\n' + get_type_hints(cls)['settings'].how_to_settings()

    def _provider_info_for(self, parameters: ImageGenerationParameters) -> ProviderInfo:
        return ProviderInfo(provider=self.provider, model=parameters.model or self.name)
