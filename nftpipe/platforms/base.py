from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from nftpipe.exceptions import ConfigurationError


class PlatformSettings(BaseSettings):
    api_key: Optional[SecretStr] = None
    platform_url: str

    @classmethod
    def platform_name(cls) -> str:
        return cls.__name__.replace('Settings', '')

    @classmethod
    def env_variable(cls, field_name: str) -> str:
        prefix = cls.model_config.get('env_prefix', '')
        return (prefix + field_name).upper()

    def resolve_api_key(self, override: str | None = None) -> str:
        if override:
            return override
        if self.api_key is None or not self.api_key.get_secret_value():
            variable = self.env_variable('api_key')
            raise ConfigurationError(
                f'API key required for {self.platform_name()}. Set {variable} in environment or pass it as a parameter.',
                variable=variable,
            )
        return self.api_key.get_secret_value()

    @classmethod
    def how_to_settings(cls) -> str:
        settings_fileds = cls.model_fields
        platform_url = settings_fileds['platform_url'].default
        required_keys = [name for name, field in settings_fileds.items() if field.is_required()]
        optional_keys = [name for name, field in settings_fileds.items() if not field.is_required()]
        return f"""# Platform
{cls.platform_name()}

# Required Environment Variables
{[cls.env_variable(name) for name in required_keys]}

# Optional Environment Variables
{[cls.env_variable(name) for name in optional_keys]}

You can get more information from this link: {platform_url}

tips: You can also set these variables in the .env file, and nftpipe will automatically load them."""
