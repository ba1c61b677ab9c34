from __future__ import annotations

import pytest

from src.ffimage.sniff import sniff_suffix


@pytest.mark.parametrize(
    ("data", "suffix"),
    [
        (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", ".png"),
        (b"\xff\xd8\xff\xe0\x00\x10JFIF", ".jpg"),
        (b"GIF89a\x01\x00\x01\x00", ".gif"),
        (b"GIF87a\x01\x00\x01\x00", ".gif"),
        (b"BM\x36\x00\x00\x00", ".bmp"),
        (b"RIFF\x24\x00\x00\x00WEBPVP8 ", ".webp"),
        (b"\x00\x00\x00\x1cftypavif\x00\x00\x00\x00", ".avif"),
        (b"\x00\x00\x00\x18ftypheic\x00\x00\x00\x00", ".heic"),
        (b"\xff\x0a\xfa\x7f", ".jxl"),
        (b"II*\x00\x08\x00\x00\x00", ".tiff"),
    ],
)
def test_sniff_suffix_known_signatures(data: bytes, suffix: str) -> None:
    assert sniff_suffix(data) == suffix


def test_sniff_suffix_unknown_data() -> None:
    assert sniff_suffix(b"") == ""
    assert sniff_suffix(b"plain text") == ""
    assert sniff_suffix(b"RIFF\x24\x00\x00\x00WAVEfmt ") == ""
    assert sniff_suffix(b"\x00\x00\x00\x18ftypisom") == ""
