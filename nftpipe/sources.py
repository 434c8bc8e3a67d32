from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from nftpipe.exceptions import InvalidRequestError
from nftpipe.types import AspectRatio, ImageQuality, ImageStyle


class PromptSource(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    kind: Literal['prompt'] = 'prompt'
    prompt: str
    style: Optional[ImageStyle] = None
    aspect_ratio: AspectRatio = '1:1'
    quality: ImageQuality = 'high'
    seed: Optional[int] = None
    model: Optional[str] = None


class UrlSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['url'] = 'url'
    url: str


class PathSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['path'] = 'path'
    path: str


ImageSource = Annotated[Union[PromptSource, UrlSource, PathSource], Field(discriminator='kind')]
StoredImageSource = Union[UrlSource, PathSource]


def image_source_from(
    prompt: str | None = None,
    image_url: str | None = None,
    image_path: str | None = None,
    style: ImageStyle | None = None,
    aspect_ratio: AspectRatio = '1:1',
    quality: ImageQuality = 'high',
    seed: int | None = None,
    model: str | None = None,
) -> PromptSource | UrlSource | PathSource:
    supplied = [name for name, value in (('prompt', prompt), ('imageUrl', image_url), ('imagePath', image_path)) if value]
    if not supplied:
        raise InvalidRequestError('Must provide either prompt, imageUrl, or imagePath')
    if len(supplied) > 1:
        raise InvalidRequestError(f'Provide exactly one image source, got {", ".join(supplied)}')

    if prompt:
        return PromptSource(
            prompt=prompt, style=style, aspect_ratio=aspect_ratio, quality=quality, seed=seed, model=model
        )
    if image_url:
        return UrlSource(url=image_url)
    return PathSource(path=image_path)  # type: ignore
