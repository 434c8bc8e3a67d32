from nftpipe.storage.base import RemoteStorageBackend, StorageBackend, UploadedAsset
from nftpipe.storage.content import ContentStorage, StorageBackendRegistry, resolve_file_name
from nftpipe.storage.services import NFTStorage, PinataStorage, Web3Storage

__all__ = [
    'UploadedAsset',
    'StorageBackend',
    'RemoteStorageBackend',
    'ContentStorage',
    'StorageBackendRegistry',
    'resolve_file_name',
    'PinataStorage',
    'NFTStorage',
    'Web3Storage',
]
