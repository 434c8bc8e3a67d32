from pydantic_settings import SettingsConfigDict

from nftpipe.platforms.base import PlatformSettings


class PinataSettings(PlatformSettings):
    model_config = SettingsConfigDict(extra='ignore', env_prefix='pinata_', env_file='.env', frozen=True)

    upload_api: str = 'https://uploads.pinata.cloud/v3/files'
    gateway_base: str = 'https://gateway.pinata.cloud/ipfs/'
    platform_url: str = 'https://docs.pinata.cloud'
