from __future__ import annotations

from typing import Any

from typing_extensions import override

from nftpipe.http import HttpClient
from nftpipe.platforms.web3_storage import Web3StorageSettings
from nftpipe.storage.base import RemoteStorageBackend


class Web3Storage(RemoteStorageBackend):
    service_name = 'web3Storage'

    settings: Web3StorageSettings

    def __init__(self, settings: Web3StorageSettings | None = None, http_client: HttpClient | None = None) -> None:
        super().__init__(settings=settings or Web3StorageSettings(), http_client=http_client)

    @override
    def _extract_cid(self, response_data: Any) -> Any:
        return response_data['cid']
