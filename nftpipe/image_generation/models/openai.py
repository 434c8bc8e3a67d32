from __future__ import annotations

import base64
import binascii
from typing import Any, Literal, Optional

import httpx
from httpx import Response
from typing_extensions import Self, Unpack, override

from nftpipe.exceptions import GenerationError
from nftpipe.http import HttpClient, JsonPostRequest, http_error_details
from nftpipe.image_generation.base import (
    GeneratedImage,
    ImageGenerationParameters,
    ImageGenerationParametersDict,
    RemoteImageGenerationModel,
    apply_style,
    save_image_bytes,
)
from nftpipe.platforms.openai import OpenAISettings

MAX_PROMPT_LENGTH = {'dall-e-3': 4000, 'dall-e-2': 1000}
OPENAI_IMAGE_GENERATION_PRICE_MAP = {
    'dall-e-3': {
        'standard': {
            '1024x1024': 0.04,
            '1792x1024': 0.08,
            '1024x1792': 0.08,
        },
        'hd': {
            '1024x1024': 0.08,
            '1792x1024': 0.12,
            '1024x1792': 0.12,
        },
    },
    'dall-e-2': {
        'standard': {
            '256x256': 0.016,
            '512x512': 0.018,
            '1024x1024': 0.02,
        }
    },
}
OpenAIImageSize = Literal['256x256', '512x512', '1024x1024', '1792x1024', '1024x1792']


class OpenAIImageGenerationParameters(ImageGenerationParameters):
    response_format: Optional[Literal['url', 'b64_json']] = None
    user: Optional[str] = None


class OpenAIImageGeneration(RemoteImageGenerationModel):
    provider = 'openai'

    parameters: OpenAIImageGenerationParameters
    settings: OpenAISettings

    def __init__(
        self,
        model: str = 'dall-e-3',
        parameters: OpenAIImageGenerationParameters | None = None,
        settings: OpenAISettings | None = None,
        http_client: HttpClient | None = None,
    ) -> None:
        parameters = parameters or OpenAIImageGenerationParameters()
        settings = settings or OpenAISettings()
        http_client = http_client or HttpClient()
        super().__init__(parameters=parameters, settings=settings, http_client=http_client)

        self.model = model

    def _check_prompt(self, model: str, prompt: str) -> None:
        limit = MAX_PROMPT_LENGTH.get(model)
        if limit is not None and len(prompt) >= limit:
            raise GenerationError(f'{model} does not support prompt length >= {limit}', provider=self.provider)

    @staticmethod
    def _size(model: str, aspect_ratio: str) -> OpenAIImageSize:
        if model == 'dall-e-2' or aspect_ratio == '1:1':
            return '1024x1024'
        width, height = (int(i) for i in aspect_ratio.split(':'))
        return '1792x1024' if width > height else '1024x1792'

    @staticmethod
    def _quality(model: str, quality: str) -> Literal['hd', 'standard']:
        if model == 'dall-e-3' and quality in ('high', 'ultra'):
            return 'hd'
        return 'standard'

    def _get_request_parameters(self, prompt: str, parameters: OpenAIImageGenerationParameters) -> JsonPostRequest:
        model = parameters.model or self.model
        headers = {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.settings.resolve_api_key()}',
        }
        json_data = {
            'model': model,
            'prompt': apply_style(prompt, parameters.style),
            'n': 1,
            'size': self._size(model, parameters.aspect_ratio),
        }
        if model == 'dall-e-3':
            json_data['quality'] = self._quality(model, parameters.quality)
        if parameters.response_format is not None:
            json_data['response_format'] = parameters.response_format
        if parameters.user is not None:
            json_data['user'] = parameters.user
        return {
            'url': self.settings.api_base + 'images/generations',
            'json': json_data,
            'headers': headers,
        }

    @override
    def generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        self._check_prompt(parameters.model or self.model, prompt)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = self.http_client.post_json(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, request_parameters, response)

    @override
    async def async_generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        self._check_prompt(parameters.model or self.model, prompt)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = await self.http_client.async_post_json(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, request_parameters, response)

    def _generation_error(self, error: httpx.HTTPError) -> GenerationError:
        status_code, body = http_error_details(error)
        if status_code is None:
            return GenerationError(f'OpenAI request failed: {error}', provider=self.provider)
        return GenerationError(f'OpenAI image generation failed ({status_code}): {body}', provider=self.provider)

    def _construct_model_output(
        self,
        prompt: str,
        parameters: OpenAIImageGenerationParameters,
        request_parameters: JsonPostRequest,
        response: Response,
    ) -> GeneratedImage:
        try:
            image_data = self._first_image(response.json())
            url = image_data.get('url')
            content = None if url else base64.b64decode(image_data['b64_json'], validate=True)
        except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as e:
            raise GenerationError(
                f'OpenAI returned an unreadable image response: {response.text[:200]}', provider=self.provider
            ) from e
        local_path = save_image_bytes(content) if content is not None else None
        json_data = request_parameters['json']
        return GeneratedImage(
            provider_info=self._provider_info_for(parameters),
            url=url,
            local_path=local_path,
            content=content,
            prompt=image_data.get('revised_prompt') or prompt,
            cost=self.calculate_cost(json_data['model'], json_data.get('quality', 'standard'), json_data['size']),
        )

    def _first_image(self, response_data: Any) -> dict[str, Any]:
        images = response_data.get('data') or []
        if not images:
            raise GenerationError(f'OpenAI returned no images: {response_data}', provider=self.provider)
        if not images[0].get('url') and images[0].get('b64_json') is None:
            raise GenerationError('No URL or b64_json found in response', provider=self.provider)
        return images[0]

    def calculate_cost(self, model: str, quality: str, size: str) -> float | None:
        try:
            return OPENAI_IMAGE_GENERATION_PRICE_MAP[model][quality][size]
        except KeyError:
            return None

    @property
    @override
    def name(self) -> str:
        return self.model

    @classmethod
    @override
    def from_name(cls, name: str) -> Self:
        return cls(model=name)
