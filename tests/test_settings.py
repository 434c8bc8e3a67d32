import pytest
from pydantic import ValidationError

from nftpipe.exceptions import ConfigurationError
from nftpipe.image_generation import OpenAIImageGeneration
from nftpipe.platforms import PinataSettings
from nftpipe.settings import PipelineSettings


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('IPFS_SERVICE', 'web3Storage')
    monkeypatch.setenv('IMAGE_PROVIDER', 'huggingface')
    monkeypatch.setenv('REQUEST_TIMEOUT', '15')
    monkeypatch.setenv('PINATA_API_KEY', 'env-jwt')
    monkeypatch.setenv('WEB3_STORAGE_API_KEY', 'env-w3')

    settings = PipelineSettings()

    assert settings.ipfs_service == 'web3Storage'
    assert settings.image_provider == 'huggingface'
    assert settings.request_timeout == 15
    assert settings.create_http_client().timeout == 15
    assert settings.pinata.resolve_api_key() == 'env-jwt'
    assert settings.storage_settings('web3Storage').resolve_api_key() == 'env-w3'


def test_unknown_ipfs_service_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('IPFS_SERVICE', 'dropbox')
    with pytest.raises(ValidationError):
        PipelineSettings()


def test_settings_are_frozen(settings: PipelineSettings) -> None:
    with pytest.raises(ValidationError):
        settings.ipfs_service = 'nftStorage'  # type: ignore


def test_resolve_api_key() -> None:
    settings = PinataSettings(api_key=None)
    assert settings.resolve_api_key('override') == 'override'
    with pytest.raises(ConfigurationError, match='Set PINATA_API_KEY'):
        settings.resolve_api_key()
    with pytest.raises(ConfigurationError):
        PinataSettings(api_key='').resolve_api_key()


def test_how_to_settings() -> None:
    text = OpenAIImageGeneration.how_to_settings()
    assert 'OpenAI' in text
    assert 'OPENAI_API_KEY' in text
