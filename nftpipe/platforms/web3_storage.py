from pydantic_settings import SettingsConfigDict

from nftpipe.platforms.base import PlatformSettings


class Web3StorageSettings(PlatformSettings):
    model_config = SettingsConfigDict(extra='ignore', env_prefix='web3_storage_', env_file='.env', frozen=True)

    upload_api: str = 'https://api.web3.storage/upload'
    gateway_base: str = 'https://w3s.link/ipfs/'
    platform_url: str = 'https://web3.storage/docs'
