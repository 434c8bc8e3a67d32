from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

JsonSchema = Dict[str, Any]
PrimitiveData = Optional[Union[str, int, float, bool]]
ImageStyle = Literal['realistic', 'artistic', 'cartoon', 'fantasy', 'cyberpunk', 'minimalist']
AspectRatio = Literal['1:1', '16:9', '9:16', '4:3', '3:4']
ImageQuality = Literal['standard', 'high', 'ultra']
StorageServiceName = Literal['pinata', 'nftStorage', 'web3Storage']
ImageProviderName = Literal['pollinations', 'openai', 'huggingface']
