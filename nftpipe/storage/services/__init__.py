from nftpipe.storage.services.nft_storage import NFTStorage
from nftpipe.storage.services.pinata import PinataStorage
from nftpipe.storage.services.web3_storage import Web3Storage

__all__ = ['PinataStorage', 'NFTStorage', 'Web3Storage']
