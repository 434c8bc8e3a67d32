from __future__ import annotations

from typing import Any

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
    resolve_dimensions,
    save_image_bytes,
)
from nftpipe.platforms.huggingface import HuggingFaceSettings

IMAGE_SUFFIXES = {
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'image/webp': '.webp',
}


class HuggingFaceImageGeneration(RemoteImageGenerationModel):
    """FLUX.1 and Stable Diffusion models served by the Hugging Face Inference API."""

    provider = 'huggingface'

    parameters: ImageGenerationParameters
    settings: HuggingFaceSettings

    def __init__(
        self,
        model: str = 'black-forest-labs/FLUX.1-schnell',
        parameters: ImageGenerationParameters | None = None,
        settings: HuggingFaceSettings | None = None,
        http_client: HttpClient | None = None,
    ) -> None:
        parameters = parameters or ImageGenerationParameters()
        settings = settings or HuggingFaceSettings()
        http_client = http_client or HttpClient()
        super().__init__(parameters=parameters, settings=settings, http_client=http_client)

        self.model = model

    def _get_request_parameters(self, prompt: str, parameters: ImageGenerationParameters) -> JsonPostRequest:
        width, height = resolve_dimensions(parameters.aspect_ratio, parameters.quality)
        inference_parameters: dict[str, Any] = {'width': width, 'height': height}
        if parameters.seed is not None:
            inference_parameters['seed'] = parameters.seed
        return {
            'url': self.settings.api_base + (parameters.model or self.model),
            'json': {'inputs': apply_style(prompt, parameters.style), 'parameters': inference_parameters},
            'headers': {
                'Authorization': f'Bearer {self.settings.resolve_api_key()}',
                'Accept': 'image/png',
            },
        }

    @override
    def generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = self.http_client.post_json(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, response)

    @override
    async def async_generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        parameters = self.parameters.clone_with_changes(**kwargs)
        request_parameters = self._get_request_parameters(prompt, parameters)
        try:
            response = await self.http_client.async_post_json(request_parameters)
        except httpx.HTTPError as e:
            raise self._generation_error(e) from e
        return self._construct_model_output(prompt, parameters, response)

    def _generation_error(self, error: httpx.HTTPError) -> GenerationError:
        status_code, body = http_error_details(error)
        if status_code is None:
            return GenerationError(f'Hugging Face request failed: {error}', provider=self.provider)
        return GenerationError(f'Hugging Face inference failed ({status_code}): {body}', provider=self.provider)

    def _construct_model_output(
        self, prompt: str, parameters: ImageGenerationParameters, response: Response
    ) -> GeneratedImage:
        content_type = response.headers.get('content-type', '').split(';')[0].strip()
        if not content_type.startswith('image/') or not response.content:
            raise GenerationError(
                f'Hugging Face returned no image bytes ({content_type or "no content type"}): {response.text[:200]}',
                provider=self.provider,
            )
        local_path = save_image_bytes(response.content, suffix=IMAGE_SUFFIXES.get(content_type, '.png'))
        return GeneratedImage(
            provider_info=self._provider_info_for(parameters),
            local_path=local_path,
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
