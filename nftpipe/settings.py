from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from nftpipe.http import HttpClient
from nftpipe.platforms import (
    HuggingFaceSettings,
    NFTStorageSettings,
    OpenAISettings,
    PinataSettings,
    PlatformSettings,
    PollinationsSettings,
    Web3StorageSettings,
)
from nftpipe.types import ImageProviderName, StorageServiceName


class PipelineSettings(BaseSettings):
    """
    Process-wide configuration, read once at startup and passed down to every component.

    Each platform keeps its own env prefix, e.g. `PINATA_API_KEY`, `OPENAI_API_KEY`.
    """

    model_config = SettingsConfigDict(extra='ignore', env_file='.env', frozen=True)

    ipfs_service: StorageServiceName = 'pinata'
    image_provider: ImageProviderName = 'pollinations'
    request_timeout: int = 60
    log_level: str = 'INFO'

    pinata: PinataSettings = Field(default_factory=PinataSettings)
    nft_storage: NFTStorageSettings = Field(default_factory=NFTStorageSettings)
    web3_storage: Web3StorageSettings = Field(default_factory=Web3StorageSettings)
    pollinations: PollinationsSettings = Field(default_factory=PollinationsSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    huggingface: HuggingFaceSettings = Field(default_factory=HuggingFaceSettings)

    def storage_settings(self, service: StorageServiceName) -> PlatformSettings:
        return {
            'pinata': self.pinata,
            'nftStorage': self.nft_storage,
            'web3Storage': self.web3_storage,
        }[service]

    def create_http_client(self) -> HttpClient:
        return HttpClient(timeout=self.request_timeout)

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=self.log_level.upper(),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )
