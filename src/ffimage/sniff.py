"""Magic-number sniffing used to give byte-backed sources a meaningful suffix."""

from __future__ import annotations

from typing import Sequence

# (offset, signature, suffix); first match wins
_SIGNATURES: Sequence[tuple[int, bytes, str]] = (
    (0, b"\x89PNG\r\n\x1a\n", ".png"),
    (0, b"\xff\xd8\xff", ".jpg"),
    (0, b"GIF87a", ".gif"),
    (0, b"GIF89a", ".gif"),
    (0, b"BM", ".bmp"),
    (0, b"\xff\x0a", ".jxl"),
    (0, b"\x00\x00\x00\x0cJXL \r\n\x87\n", ".jxl"),
    (0, b"II*\x00", ".tiff"),
    (0, b"MM\x00*", ".tiff"),
)

_FTYP_BRANDS = {
    b"avif": ".avif",
    b"avis": ".avif",
    b"heic": ".heic",
    b"heix": ".heic",
    b"mif1": ".heif",
}


def sniff_suffix(data: bytes) -> str:
    """Return a file suffix (with leading dot) for ``data``, or ``""`` when unknown."""

    head = bytes(data[:32])
    if len(head) >= 12 and head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return ".webp"
    if len(head) >= 12 and head[4:8] == b"ftyp":
        return _FTYP_BRANDS.get(head[8:12], "")
    for offset, signature, suffix in _SIGNATURES:
        if head[offset : offset + len(signature)] == signature:
            return suffix
    return ""


__all__ = ["sniff_suffix"]
