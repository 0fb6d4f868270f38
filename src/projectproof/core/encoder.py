from __future__ import annotations

import base64
import binascii
import logging

from projectproof.errors import EncodingError
from projectproof.types import MediaFile

logger = logging.getLogger(__name__)

_DATA_URL_MARKER = b";base64,"
_DATA_URL_PEEK = 256


def strip_data_url_prefix(value: str) -> str:
    """Drop a ``data:<type>;base64,`` preamble if present."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def is_data_url(head: bytes) -> bool:
    return head.startswith(b"data:") and _DATA_URL_MARKER in head[:_DATA_URL_PEEK]


def decode_data_url(raw: bytes, name: str) -> bytes:
    """Return the binary payload of a base64 data URL body.

    Browser clients sometimes post FileReader.readAsDataURL output as the body.
    """
    try:
        payload = strip_data_url_prefix(raw.decode("ascii")).strip()
        decoded = base64.b64decode(payload, validate=True)
    except (UnicodeDecodeError, binascii.Error) as exc:
        raise EncodingError(f"file {name!r} is not a valid data URL: {exc}") from exc
    if not decoded:
        raise EncodingError(f"file {name!r} is empty")
    return decoded


def unwrap_data_url(media: MediaFile) -> MediaFile:
    """Swap a data URL body for its decoded bytes; other media pass through."""
    try:
        head = _peek(media)
    except (OSError, ValueError):
        return media
    if not is_data_url(head):
        return media
    decoded = decode_data_url(media.read_bytes(), media.name)
    logger.debug("Unwrapped data URL name=%s bytes=%s", media.name, len(decoded))
    return MediaFile(name=media.name, content_type=media.content_type, data=decoded)


def encode_media(media: MediaFile | None) -> str:
    if media is None:
        raise EncodingError("no file to encode")

    try:
        raw = media.read_bytes()
    except (OSError, ValueError) as exc:
        raise EncodingError(f"could not read {media.name!r}: {exc}") from exc

    if not raw:
        raise EncodingError(f"file {media.name!r} is empty")

    if is_data_url(raw):
        raw = decode_data_url(raw, media.name)

    logger.debug("Encoded media name=%s bytes=%s", media.name, len(raw))
    return base64.b64encode(raw).decode("ascii")


def _peek(media: MediaFile) -> bytes:
    if media.data is not None:
        return media.data[:_DATA_URL_PEEK]
    if media.path is None:
        raise ValueError(f"media {media.name!r} has no data or path")
    with media.path.open("rb") as handle:
        return handle.read(_DATA_URL_PEEK)
