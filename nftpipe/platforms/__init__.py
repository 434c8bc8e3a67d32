from nftpipe.platforms.base import PlatformSettings
from nftpipe.platforms.huggingface import HuggingFaceSettings
from nftpipe.platforms.nft_storage import NFTStorageSettings
from nftpipe.platforms.openai import OpenAISettings
from nftpipe.platforms.pinata import PinataSettings
from nftpipe.platforms.pollinations import PollinationsSettings
from nftpipe.platforms.web3_storage import Web3StorageSettings

__all__ = [
    'PlatformSettings',
    'PinataSettings',
    'NFTStorageSettings',
    'Web3StorageSettings',
    'OpenAISettings',
    'HuggingFaceSettings',
    'PollinationsSettings',
]
