from __future__ import annotations

from urllib.parse import quote

import httpx
from httpx import Response
from typing_extensions import Self, Unpack, override

from nftpipe.exceptions import GenerationError
from nftpipe.http import HttpClient, GetRequest, http_error_details
from nftpipe.image_generation.base import (
    GeneratedImage,
    ImageGenerationParameters,
    ImageGenerationParametersDict,
    RemoteImageGenerationModel,
    apply_style,
    resolve_dimensions,
)
from nftpipe.platforms.pollinations import PollinationsSettings


class PollinationsImageGeneration(RemoteImageGenerationModel):
    """
    Free text-to-image generation through Pollinations.ai.

    The image is rendered on the first GET of its URL, so generation issues that GET once
    to make sure the provider produced an image and returns the URL.
    """

    provider = 'pollinations'

    parameters: ImageGenerationParameters
    settings: PollinationsSettings

    def __init__(
        self,
        model: str = 'flux',
        parameters: ImageGenerationParameters | None = None,
        settings: PollinationsSettings | None = None,
        http_client: HttpClient | None = None,
    ) -> None:
        parameters = parameters or ImageGenerationParameters()
        settings = settings or PollinationsSettings()
        http_client = http_client or HttpClient()
        super().__init__(parameters=parameters, settings=settings, http_client=http_client)

        self.model = model

    def _get_request_parameters(self, prompt: str, parameters: ImageGenerationParameters) -> GetRequest:
        width, height = resolve_dimensions(parameters.aspect_ratio, parameters.quality)
        params: dict[str, str | int] = {
            'width': width,
            'height': height,
            'model': parameters.model or self.model,
            'nologo': 'true',
        }
        if parameters.seed is not None:
            params['seed'] = parameters.seed
        headers = {}
        if self.settings.api_key is not None:
            headers['Authorization'] = f'Bearer {self.settings.api_key.get_secret_value()}'
        return {
            'url': self.settings.api_base + quote(apply_style(prompt, parameters.style), safe=''),
            'params': params,
            'headers': headers,
        }

    @override
    def generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = self.http_client.get(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, request_parameters, response)

    @override
    async def async_generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = await self.http_client.async_get(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, request_parameters, response)

    def _generation_error(self, error: httpx.HTTPError) -> GenerationError:
        status_code, body = http_error_details(error)
        if status_code is None:
            return GenerationError(f'Pollinations request failed: {error}', provider=self.provider)
        return GenerationError(f'Pollinations generation failed ({status_code}): {body}', provider=self.provider)

    def _construct_model_output(
        self,
        prompt: str,
        parameters: ImageGenerationParameters,
        request_parameters: GetRequest,
        response: Response,
    ) -> GeneratedImage:
        content_type = response.headers.get('content-type', '')
        if not content_type.startswith('image/'):
            raise GenerationError(
                f'Pollinations returned {content_type or "no content type"} instead of an image: {response.text[:200]}',
                provider=self.provider,
            )
        url = httpx.URL(request_parameters['url'], params=request_parameters.get('params'))
        return GeneratedImage(
            provider_info=self._provider_info_for(parameters),
            url=str(url),
            content=response.content,
            prompt=prompt,
            cost=0,
        )

    @property
    @override
    def name(self) -> str:
        return self.model

    @classmethod
    @override
    def from_name(cls, name: str) -> Self:
        return cls(model=name)
