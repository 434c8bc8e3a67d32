from __future__ import annotations

from typing import Any

from typing_extensions import override

from nftpipe.http import HttpClient
from nftpipe.platforms.nft_storage import NFTStorageSettings
from nftpipe.storage.base import RemoteStorageBackend


class NFTStorage(RemoteStorageBackend):
    service_name = 'nftStorage'

    settings: NFTStorageSettings

    def __init__(self, settings: NFTStorageSettings | None = None, http_client: HttpClient | None = None) -> None:
        super().__init__(settings=settings or NFTStorageSettings(), http_client=http_client)

    @override
    def _extract_cid(self, response_data: Any) -> Any:
        return response_data['value']['cid']
