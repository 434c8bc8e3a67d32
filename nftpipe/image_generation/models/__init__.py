from nftpipe.image_generation.models.huggingface import HuggingFaceImageGeneration
from nftpipe.image_generation.models.openai import OpenAIImageGeneration, OpenAIImageGenerationParameters
from nftpipe.image_generation.models.pollinations import PollinationsImageGeneration

__all__ = [
    'PollinationsImageGeneration',
    'OpenAIImageGeneration',
    'OpenAIImageGenerationParameters',
    'HuggingFaceImageGeneration',
]
