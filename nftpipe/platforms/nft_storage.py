from pydantic_settings import SettingsConfigDict

from nftpipe.platforms.base import PlatformSettings


class NFTStorageSettings(PlatformSettings):
    model_config = SettingsConfigDict(extra='ignore', env_prefix='nft_storage_', env_file='.env', frozen=True)

    upload_api: str = 'https://api.nft.storage/upload'
    gateway_base: str = 'https://nftstorage.link/ipfs/'
    platform_url: str = 'https://nft.storage/docs'
