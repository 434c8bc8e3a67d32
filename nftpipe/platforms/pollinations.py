from pydantic_settings import SettingsConfigDict

from nftpipe.platforms.base import PlatformSettings


class PollinationsSettings(PlatformSettings):
    model_config = SettingsConfigDict(extra='ignore', env_prefix='pollinations_', env_file='.env', frozen=True)

    api_base: str = 'https://image.pollinations.ai/prompt/'
    platform_url: str = 'https://pollinations.ai'
