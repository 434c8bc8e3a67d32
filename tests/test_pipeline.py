from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List

import httpx
import pytest
from pydantic import ValidationError
from pytest_mock import MockerFixture

from nftpipe.exceptions import (
    GenerationError,
    ImageFileError,
    InvalidRequestError,
    MetadataUploadError,
    UploadError,
)
from nftpipe.image_generation import HuggingFaceImageGeneration, OpenAIImageGeneration
from nftpipe.image_generation.models import huggingface
from nftpipe.pipeline import NFTPipeline, PackageRequest, PackageResult
from nftpipe.platforms import HuggingFaceSettings, OpenAISettings
from nftpipe.storage import ContentStorage
from nftpipe.testing import FAKE_IMAGE_BYTES, FakeImageGeneration, FakeStorageBackend, fake_http_client

FIXED_MILLIS = 1700000000000


@pytest.fixture()
def image_model() -> FakeImageGeneration:
    return FakeImageGeneration()


@pytest.fixture()
def pipeline(image_model: FakeImageGeneration, storage: ContentStorage) -> NFTPipeline:
    return NFTPipeline(image_model=image_model, storage=storage, clock=lambda: FIXED_MILLIS)


def test_build_from_prompt(
    pipeline: NFTPipeline,
    image_model: FakeImageGeneration,
    backend: FakeStorageBackend,
    requests_seen: List[httpx.Request],
) -> None:
    request = PackageRequest.model_validate(
        {
            'prompt': 'a red fox',
            'style': 'fantasy',
            'aspectRatio': '16:9',
            'name': 'Fox #1',
            'description': 'A fox in the snow',
            'attributes': [{'trait_type': 'Color', 'value': 'red'}],
        }
    )

    result = pipeline.build(request)

    assert image_model.calls == [('a red fox', {'style': 'fantasy', 'aspect_ratio': '16:9', 'quality': 'high'})]
    assert str(requests_seen[0].url) == 'http://x/fox.png'
    assert [upload[0] for upload in backend.uploads] == ['fox-1-1700000000000.png', 'metadata.json']
    assert backend.uploads[0][1] == FAKE_IMAGE_BYTES
    assert result.image_upload.cid == 'abc123'
    assert result.metadata_upload.cid == 'def456'
    assert result.ipfs_image_url == 'ipfs://abc123'
    assert result.ipfs_metadata_url == 'ipfs://def456'
    assert result.metadata.to_document() == {
        'name': 'Fox #1',
        'description': 'A fox in the snow',
        'image': 'ipfs://abc123',
        'attributes': [{'trait_type': 'Color', 'value': 'red'}],
        'properties': {},
    }
    assert result.generated_prompt == 'a red fox'


def test_build_from_url_skips_generation(
    pipeline: NFTPipeline,
    image_model: FakeImageGeneration,
    backend: FakeStorageBackend,
    requests_seen: List[httpx.Request],
) -> None:
    request = PackageRequest(image_url='http://x/cat.png', name='Cat', description='A cat')

    result = pipeline.build(request)

    assert image_model.calls == []
    assert str(requests_seen[0].url) == 'http://x/cat.png'
    assert backend.uploads[0][0] == 'cat-1700000000000.png'
    assert result.generated_prompt is None
    assert result.metadata.image_reference == 'ipfs://abc123'


def test_build_from_generated_local_file(storage: ContentStorage, backend: FakeStorageBackend, tmp_path: Path) -> None:
    image_path = tmp_path / 'generated.png'
    image_path.write_bytes(FAKE_IMAGE_BYTES)
    pipeline = NFTPipeline(
        image_model=FakeImageGeneration(url=None, local_path=str(image_path)),
        storage=storage,
        clock=lambda: FIXED_MILLIS,
    )

    result = pipeline.build(PackageRequest(prompt='a red fox', name='', description='A fox'))

    assert backend.uploads[0] == ('a-red-fox-1700000000000.png', FAKE_IMAGE_BYTES, 'test-jwt')
    assert not image_path.exists()
    assert result.image_upload.cid == 'abc123'


def test_build_without_image_source(pipeline: NFTPipeline, image_model: FakeImageGeneration, backend: FakeStorageBackend) -> None:
    with pytest.raises(InvalidRequestError, match='Must provide either prompt, imageUrl, or imagePath') as exc_info:
        pipeline.build(PackageRequest(name='Fox', description='A fox'))

    assert exc_info.value.stage is None
    assert image_model.calls == []
    assert backend.uploads == []


def test_package_request_rejects_bad_urls() -> None:
    with pytest.raises(ValidationError):
        PackageRequest(image_url='ftp://x/fox.png', name='Fox', description='A fox')
    with pytest.raises(ValidationError):
        PackageRequest(prompt='a fox', external_url='not a url', name='Fox', description='A fox')


def test_generation_failure(storage: ContentStorage, backend: FakeStorageBackend) -> None:
    pipeline = NFTPipeline(
        image_model=FakeImageGeneration(error=GenerationError('provider is down', provider='pollinations')),
        storage=storage,
    )

    with pytest.raises(GenerationError) as exc_info:
        pipeline.build(PackageRequest(prompt='a red fox', name='Fox', description='A fox'))

    assert exc_info.value.stage == 'image-generation'
    assert str(exc_info.value) == '[image-generation] provider is down'
    assert backend.uploads == []


def test_image_upload_failure_stops_the_run(storage: ContentStorage) -> None:
    failing = FakeStorageBackend(error=UploadError('pinata is down', service='pinata'), fail_on_upload=1)
    storage.backends['pinata'] = failing
    pipeline = NFTPipeline(image_model=FakeImageGeneration(), storage=storage)

    with pytest.raises(UploadError) as exc_info:
        pipeline.build(PackageRequest(prompt='a red fox', name='Fox', description='A fox'))

    assert not isinstance(exc_info.value, MetadataUploadError)
    assert exc_info.value.stage == 'image-upload'
    assert len(failing.uploads) == 1


def test_metadata_upload_failure_reports_image_cid(storage: ContentStorage) -> None:
    failing = FakeStorageBackend(error=UploadError('pinata is down', service='pinata'), fail_on_upload=2)
    storage.backends['pinata'] = failing
    pipeline = NFTPipeline(image_model=FakeImageGeneration(), storage=storage)

    with pytest.raises(MetadataUploadError) as exc_info:
        pipeline.build(PackageRequest(prompt='a red fox', name='Fox', description='A fox'))

    error = exc_info.value
    assert error.stage == 'metadata-upload'
    assert error.image_cid == 'abc123'
    assert error.metadata.image_reference == 'ipfs://abc123'
    assert 'image already uploaded as ipfs://abc123' in str(error)
    assert [upload[0] for upload in failing.uploads][1] == 'metadata.json'


def test_missing_image_path(pipeline: NFTPipeline, backend: FakeStorageBackend, tmp_path: Path) -> None:
    request = PackageRequest(image_path=str(tmp_path / 'nope.png'), name='Fox', description='A fox')

    with pytest.raises(ImageFileError) as exc_info:
        pipeline.build(request)

    assert exc_info.value.stage == 'image-upload'
    assert backend.uploads == []


def test_async_build(pipeline: NFTPipeline, backend: FakeStorageBackend) -> None:
    request = PackageRequest(prompt='a red fox', name='Fox', description='A fox', ipfs_api_key='per-call')

    result = asyncio.run(pipeline.async_build(request))

    assert [upload[2] for upload in backend.uploads] == ['per-call', 'per-call']
    assert result.metadata_upload.cid == 'def456'


def test_async_batch_build(pipeline: NFTPipeline, backend: FakeStorageBackend) -> None:
    requests = [
        PackageRequest(prompt='a red fox', name='Fox', description='A fox'),
        PackageRequest(image_url='http://x/cat.png', name='Cat', description='A cat'),
    ]

    async def collect() -> List[PackageResult]:
        return [result async for result in pipeline.async_batch_build(requests)]

    results = asyncio.run(collect())

    assert [result.metadata.name for result in results] == ['Fox', 'Cat']
    assert len(backend.uploads) == 4


def test_provider_bytes_are_uploaded_without_download(
    storage: ContentStorage,
    backend: FakeStorageBackend,
    requests_seen: List[httpx.Request],
    mocker: MockerFixture,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=FAKE_IMAGE_BYTES, headers={'content-type': 'image/png'})

    save_image_bytes = mocker.spy(huggingface, 'save_image_bytes')
    image_model = HuggingFaceImageGeneration(
        settings=HuggingFaceSettings(api_key='hf-test'), http_client=fake_http_client(handler)
    )
    pipeline = NFTPipeline(image_model=image_model, storage=storage, clock=lambda: FIXED_MILLIS)

    result = pipeline.build(PackageRequest(prompt='a red fox', name='Fox', description='A fox'))

    assert result.image_upload.cid == 'abc123'
    assert backend.uploads[0] == ('fox-1700000000000.png', FAKE_IMAGE_BYTES, 'test-jwt')
    assert requests_seen == []
    assert not Path(save_image_bytes.spy_return).exists()


def test_generated_file_is_removed_when_upload_fails(storage: ContentStorage, tmp_path: Path) -> None:
    image_path = tmp_path / 'generated.png'
    image_path.write_bytes(FAKE_IMAGE_BYTES)
    storage.backends['pinata'] = FakeStorageBackend(error=UploadError('pinata is down', service='pinata'))
    pipeline = NFTPipeline(image_model=FakeImageGeneration(url=None, local_path=str(image_path)), storage=storage)

    with pytest.raises(UploadError):
        asyncio.run(pipeline.async_build(PackageRequest(prompt='a red fox', name='Fox', description='A fox')))

    assert not image_path.exists()


def test_unreadable_provider_response_is_tagged(storage: ContentStorage, backend: FakeStorageBackend) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text='<html>gateway hiccup</html>')

    image_model = OpenAIImageGeneration(settings=OpenAISettings(api_key='sk-test'), http_client=fake_http_client(handler))
    pipeline = NFTPipeline(image_model=image_model, storage=storage)

    with pytest.raises(GenerationError) as exc_info:
        pipeline.build(PackageRequest(prompt='a red fox', name='Fox', description='A fox'))

    assert exc_info.value.stage == 'image-generation'
    assert backend.uploads == []


def test_async_build_metadata_failure_reports_image_cid(storage: ContentStorage) -> None:
    failing = FakeStorageBackend(error=UploadError('pinata is down', service='pinata'), fail_on_upload=2)
    storage.backends['pinata'] = failing
    pipeline = NFTPipeline(image_model=FakeImageGeneration(), storage=storage)

    with pytest.raises(MetadataUploadError) as exc_info:
        asyncio.run(pipeline.async_build(PackageRequest(prompt='a red fox', name='Fox', description='A fox')))

    assert exc_info.value.stage == 'metadata-upload'
    assert exc_info.value.image_cid == 'abc123'
    assert len(failing.uploads) == 2
