from __future__ import annotations

from typing import Any, ClassVar, Dict

from typing_extensions import override

from nftpipe.http import HttpClient
from nftpipe.platforms.pinata import PinataSettings
from nftpipe.storage.base import RemoteStorageBackend


class PinataStorage(RemoteStorageBackend):
    service_name = 'pinata'
    extra_form_fields: ClassVar[Dict[str, str]] = {'network': 'public'}

    settings: PinataSettings

    def __init__(self, settings: PinataSettings | None = None, http_client: HttpClient | None = None) -> None:
        super().__init__(settings=settings or PinataSettings(), http_client=http_client)

    @override
    def _extract_cid(self, response_data: Any) -> Any:
        # v3 files API nests the file record under `data`
        return response_data['data']['cid']
