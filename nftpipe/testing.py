from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple

import httpx
from typing_extensions import Self, Unpack

from nftpipe.http import HttpClient
from nftpipe.image_generation.base import GeneratedImage, ImageGenerationModel, ImageGenerationParametersDict
from nftpipe.storage.base import StorageBackend, UploadedAsset
from nftpipe.types import StorageServiceName

FAKE_IMAGE_BYTES = b'\x89PNG\r\n\x1a\nfake-image'


class FakeImageGeneration(ImageGenerationModel):
    provider = 'test'

    def __init__(
        self,
        url: str | None = 'http://x/fox.png',
        local_path: str | None = None,
        content: bytes | None = None,
        error: Exception | None = None,
    ) -> None:
        self.url = url
        self.local_path = local_path
        self.content = content
        self.error = error
        self.calls: List[Tuple[str, dict[str, Any]]] = []

    def generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        self.calls.append((prompt, dict(kwargs)))
        if self.error is not None:
            raise self.error
        return GeneratedImage(
            provider_info=self.provider_info,
            url=self.url,
            local_path=self.local_path,
            content=self.content,
            prompt=prompt,
            cost=0,
        )

    async def async_generate(self, prompt: str, **kwargs: Unpack[ImageGenerationParametersDict]) -> GeneratedImage:
        return self.generate(prompt, **kwargs)

    @property
    def name(self) -> str:
        return 'fake'

    @classmethod
    def from_name(cls, name: str) -> Self:
        return cls()


class FakeStorageBackend(StorageBackend):
    """Hands out `cids` in order and records every upload as `(file_name, content, credential)`."""

    def __init__(
        self,
        cids: Sequence[str] = ('abc123', 'def456'),
        service_name: StorageServiceName = 'pinata',
        error: Exception | None = None,
        fail_on_upload: Optional[int] = None,
    ) -> None:
        self.cids = list(cids)
        self.service_name = service_name  # type: ignore
        self.error = error
        self.fail_on_upload = fail_on_upload
        self.uploads: List[Tuple[str, bytes, str]] = []

    def upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        self.uploads.append((file_name, content, credential))
        if self.error is not None and (self.fail_on_upload is None or self.fail_on_upload == len(self.uploads)):
            raise self.error
        cid = self.cids[(len(self.uploads) - 1) % len(self.cids)]
        return UploadedAsset(
            cid=cid,
            gateway_url=f'https://gateway.test/ipfs/{cid}',
            service=self.service_name,
            file_name=file_name,
        )

    async def async_upload(self, content: bytes, file_name: str, credential: str) -> UploadedAsset:
        return self.upload(content, file_name, credential)


def serve_fake_image(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=FAKE_IMAGE_BYTES, headers={'content-type': 'image/png'})


def fake_http_client(handler: Callable[[httpx.Request], httpx.Response] = serve_fake_image) -> HttpClient:
    return HttpClient(transport=httpx.MockTransport(handler))
