from __future__ import annotations

from typing import List

import httpx
import pytest

from nftpipe.http import HttpClient
from nftpipe.platforms import NFTStorageSettings, OpenAISettings, PinataSettings, Web3StorageSettings
from nftpipe.settings import PipelineSettings
from nftpipe.storage import ContentStorage
from nftpipe.testing import FakeStorageBackend, fake_http_client, serve_fake_image


@pytest.fixture()
def settings() -> PipelineSettings:
    return PipelineSettings(
        ipfs_service='pinata',
        image_provider='pollinations',
        pinata=PinataSettings(api_key='test-jwt'),
        nft_storage=NFTStorageSettings(api_key=None),
        web3_storage=Web3StorageSettings(api_key=None),
        openai=OpenAISettings(api_key=None),
    )


@pytest.fixture()
def requests_seen() -> List[httpx.Request]:
    return []


@pytest.fixture()
def image_host(requests_seen: List[httpx.Request]) -> HttpClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return serve_fake_image(request)

    return fake_http_client(handler)


@pytest.fixture()
def backend() -> FakeStorageBackend:
    return FakeStorageBackend(cids=['abc123', 'def456'])


@pytest.fixture()
def storage(backend: FakeStorageBackend, settings: PipelineSettings, image_host: HttpClient) -> ContentStorage:
    return ContentStorage({'pinata': backend}, settings=settings, http_client=image_host)
