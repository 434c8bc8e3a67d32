from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from nftpipe.metadata import NFTMetadata


class NFTPipelineError(Exception):
    """
    Base class for every error raised by nftpipe.

    Attributes:
        stage (str | None): The pipeline stage the error was raised in, set by the pipeline when it re-raises.
    """

    stage: Optional[str] = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f'[{self.stage}] {message}'
        return message


class InvalidRequestError(NFTPipelineError, ValueError):
    ...


class ConfigurationError(NFTPipelineError):
    def __init__(self, message: str, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable


class GenerationError(NFTPipelineError):
    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class FetchError(NFTPipelineError):
    def __init__(self, message: str, url: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.body = body


class ImageFileError(NFTPipelineError, OSError):
    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class UploadError(NFTPipelineError):
    def __init__(
        self,
        message: str,
        service: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.body = body


class AuthenticationError(UploadError):
    ...


class MetadataUploadError(UploadError):
    image_cid: Optional[str] = None

    def __init__(
        self,
        message: str,
        metadata: NFTMetadata,
        service: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message, service=service, status_code=status_code, body=body)
        self.metadata = metadata

    def __str__(self) -> str:
        message = super().__str__()
        if self.image_cid:
            return f'{message} (image already uploaded as ipfs://{self.image_cid})'
        return message


class UnknownOperationError(NFTPipelineError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Unknown tool: {name}')
        self.name = name
