from __future__ import annotations

import re
import time
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

IPFS_SCHEME = 'ipfs://'
DEFAULT_FILE_NAME = 'image.png'
FALLBACK_SLUG = 'nft-image'
MAX_SLUG_LENGTH = 50

_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9]+')
_CID_V0 = re.compile(r'^Qm[1-9A-HJ-NP-Za-km-z]{44}$')
_CID_V1_BASE32 = re.compile(r'^b[a-z2-7]{50,}$')


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Lower-cases `text`, collapses every run of non-alphanumeric characters into one hyphen,
    strips hyphens at both ends and truncates the result without leaving a trailing hyphen.

    >>> slugify('Dragon #1!!')
    'dragon-1'
    """
    slug = _NON_ALPHANUMERIC.sub('-', text.lower()).strip('-')
    return slug[:max_length].rstrip('-')


def current_millis() -> int:
    return int(time.time() * 1000)


def derive_file_name(base: str, timestamp_millis: int, extension: str = 'png') -> str:
    slug = slugify(base) or FALLBACK_SLUG
    return f'{slug}-{timestamp_millis}.{extension}'


def infer_file_name_from_url(url: str) -> str | None:
    segment = PurePosixPath(unquote(urlparse(url).path)).name
    if segment and '.' in segment:
        return segment
    return None


def infer_file_name_from_path(path: str) -> str | None:
    return PurePosixPath(path.replace('\\', '/')).name or None


def ipfs_uri(cid: str) -> str:
    return f'{IPFS_SCHEME}{cid}'


def is_valid_cid(cid: str) -> bool:
    return bool(_CID_V0.match(cid) or _CID_V1_BASE32.match(cid))
