from pydantic_settings import SettingsConfigDict

from nftpipe.platforms.base import PlatformSettings


class HuggingFaceSettings(PlatformSettings):
    model_config = SettingsConfigDict(extra='ignore', env_prefix='huggingface_', env_file='.env', frozen=True)

    api_base: str = 'https://api-inference.huggingface.co/models/'
    platform_url: str = 'https://huggingface.co/docs/api-inference'
