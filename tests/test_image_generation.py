from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path
from typing import List

import httpx
import pytest

from nftpipe.exceptions import ConfigurationError, GenerationError
from nftpipe.image_generation import (
    HuggingFaceImageGeneration,
    ImageGenerationModelRegistry,
    ImageGenerationModels,
    OpenAIImageGeneration,
    PollinationsImageGeneration,
    load_image_model,
)
from nftpipe.image_generation.base import apply_style, resolve_dimensions
from nftpipe.platforms import HuggingFaceSettings, OpenAISettings, PollinationsSettings
from nftpipe.settings import PipelineSettings
from nftpipe.testing import FAKE_IMAGE_BYTES, fake_http_client


def test_provider_is_unique() -> None:
    assert len(ImageGenerationModels) == len(ImageGenerationModelRegistry)


@pytest.mark.parametrize(
    ('aspect_ratio', 'quality', 'expected'),
    [
        ('1:1', 'high', (1024, 1024)),
        ('16:9', 'high', (1024, 576)),
        ('9:16', 'high', (576, 1024)),
        ('4:3', 'ultra', (1536, 1152)),
        ('3:4', 'high', (768, 1024)),
    ],
)
def test_resolve_dimensions(aspect_ratio: str, quality: str, expected: tuple[int, int]) -> None:
    assert resolve_dimensions(aspect_ratio, quality) == expected


def test_apply_style() -> None:
    assert apply_style('a red fox', None) == 'a red fox'
    assert apply_style('a red fox', 'cyberpunk') == 'a red fox, cyberpunk, neon lights, futuristic'


def test_pollinations_generate() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=FAKE_IMAGE_BYTES, headers={'content-type': 'image/jpeg'})

    model = PollinationsImageGeneration(settings=PollinationsSettings(api_key=None), http_client=fake_http_client(handler))
    image = model.generate('a red fox', aspect_ratio='16:9', seed=7, style='fantasy')

    assert len(seen) == 1
    request_url = seen[0].url
    assert request_url.host == 'image.pollinations.ai'
    assert 'fantasy%20art' in request_url.raw_path.decode()
    assert request_url.params['width'] == '1024'
    assert request_url.params['height'] == '576'
    assert request_url.params['seed'] == '7'
    assert request_url.params['model'] == 'flux'
    assert 'authorization' not in seen[0].headers
    assert image.url == str(request_url)
    assert image.prompt == 'a red fox'
    assert image.model == 'pollinations/flux'
    assert image.content == FAKE_IMAGE_BYTES
    assert image.cost == 0


def test_pollinations_model_override_and_async() -> None:
    model = PollinationsImageGeneration(settings=PollinationsSettings(api_key=None), http_client=fake_http_client())
    image = asyncio.run(model.async_generate('a red fox', model='turbo'))

    assert image.url is not None
    assert 'model=turbo' in image.url
    assert image.model == 'pollinations/turbo'


def test_pollinations_failure_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text='upstream busy')

    model = PollinationsImageGeneration(settings=PollinationsSettings(api_key=None), http_client=fake_http_client(handler))
    with pytest.raises(GenerationError, match='502') as exc_info:
        model.generate('a red fox')
    assert exc_info.value.provider == 'pollinations'


def test_pollinations_non_image_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={'error': 'nsfw prompt'})

    model = PollinationsImageGeneration(settings=PollinationsSettings(api_key=None), http_client=fake_http_client(handler))
    with pytest.raises(GenerationError, match='instead of an image'):
        model.generate('a red fox')


def test_openai_generate_b64_is_saved_locally() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        payload = {'data': [{'b64_json': base64.b64encode(FAKE_IMAGE_BYTES).decode(), 'revised_prompt': 'a red fox, revised'}]}
        return httpx.Response(200, json=payload)

    model = OpenAIImageGeneration(settings=OpenAISettings(api_key='sk-test'), http_client=fake_http_client(handler))
    image = model.generate('a red fox', aspect_ratio='16:9', quality='high')

    request_body = json.loads(seen[0].content)
    assert seen[0].headers['authorization'] == 'Bearer sk-test'
    assert request_body['size'] == '1792x1024'
    assert request_body['quality'] == 'hd'
    assert image.url is None
    assert image.local_path is not None
    assert Path(image.local_path).read_bytes() == FAKE_IMAGE_BYTES
    assert image.prompt == 'a red fox, revised'
    assert image.content == FAKE_IMAGE_BYTES
    assert image.cost == 0.12
    Path(image.local_path).unlink()


def test_openai_missing_key_names_variable() -> None:
    model = OpenAIImageGeneration(settings=OpenAISettings(api_key=None), http_client=fake_http_client())
    with pytest.raises(ConfigurationError) as exc_info:
        model.generate('a red fox')
    assert exc_info.value.variable == 'OPENAI_API_KEY'
    assert 'OPENAI_API_KEY' in str(exc_info.value)


def test_openai_empty_result_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={'data': [{}]})

    model = OpenAIImageGeneration(settings=OpenAISettings(api_key='sk-test'), http_client=fake_http_client(handler))
    with pytest.raises(GenerationError, match='No URL or b64_json'):
        model.generate('a red fox')


@pytest.mark.parametrize(
    'response',
    [
        httpx.Response(200, text='<html>gateway hiccup</html>'),
        httpx.Response(200, json=['not', 'an', 'object']),
        httpx.Response(200, json={'data': [{'b64_json': '***not base64***'}]}),
        httpx.Response(200, json={'data': ['not-an-object']}),
    ],
)
def test_openai_unreadable_response_is_generation_error(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    model = OpenAIImageGeneration(settings=OpenAISettings(api_key='sk-test'), http_client=fake_http_client(handler))
    with pytest.raises(GenerationError, match='unreadable image response') as exc_info:
        model.generate('a red fox')
    assert exc_info.value.provider == 'openai'


def test_huggingface_generate() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=FAKE_IMAGE_BYTES, headers={'content-type': 'image/png'})

    model = HuggingFaceImageGeneration(settings=HuggingFaceSettings(api_key='hf-test'), http_client=fake_http_client(handler))
    image = asyncio.run(model.async_generate('a red fox', seed=3, quality='standard'))

    request_body = json.loads(seen[0].content)
    assert seen[0].url.path.endswith('black-forest-labs/FLUX.1-schnell')
    assert request_body['parameters'] == {'width': 512, 'height': 512, 'seed': 3}
    assert image.local_path is not None
    assert Path(image.local_path).read_bytes() == FAKE_IMAGE_BYTES
    Path(image.local_path).unlink()


def test_huggingface_error_keeps_upstream_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={'error': 'Model is currently loading'})

    model = HuggingFaceImageGeneration(settings=HuggingFaceSettings(api_key='hf-test'), http_client=fake_http_client(handler))
    with pytest.raises(GenerationError, match='currently loading'):
        model.generate('a red fox')


def test_load_image_model(settings: PipelineSettings) -> None:
    model = load_image_model(settings)
    assert isinstance(model, PollinationsImageGeneration)

    openai_settings = settings.model_copy(update={'image_provider': 'openai'})
    assert isinstance(load_image_model(openai_settings), OpenAIImageGeneration)
