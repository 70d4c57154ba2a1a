"""Magic bytes detection for attachment uploads.

Checks that an uploaded file really is the image its Content-Type claims,
so a renamed executable or HTML page never lands next to a page comment.
"""

from typing import NamedTuple


# Bytes to read from the start of a file before detecting its type
HEADER_SIZE = 64
MIN_BYTES_FOR_DETECTION = 4


class MagicSignature(NamedTuple):
    """Leading bytes that identify an image format."""

    pattern: bytes
    mime_type: str
    offset: int = 0


# Reference: https://en.wikipedia.org/wiki/List_of_file_signatures
# No SVG: it can carry script and SharePoint serves attachments inline.
IMAGE_SIGNATURES: tuple[MagicSignature, ...] = (
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
    MagicSignature(b"WEBP", "image/webp", offset=8),
    MagicSignature(b"BM", "image/bmp"),
    MagicSignature(b"II*\x00", "image/tiff"),
    MagicSignature(b"MM\x00*", "image/tiff"),
)


def detect_content_type(data: bytes) -> str | None:
    """Detect an image MIME type from the first bytes of a file.

    Returns None when the bytes match no known image format.
    """
    if len(data) < MIN_BYTES_FOR_DETECTION:
        return None

    for sig in IMAGE_SIGNATURES:
        if sig.offset:
            # WebP is RIFF....WEBP
            if data[:4] != b"RIFF":
                continue
            if data[sig.offset : sig.offset + len(sig.pattern)] == sig.pattern:
                return sig.mime_type
        elif data.startswith(sig.pattern):
            return sig.mime_type

    return None


def validate_content_type(
    data: bytes,
    declared_type: str | None,
    allowed_types: frozenset[str],
) -> tuple[bool, str | None, str | None]:
    """Validate file content against the declared Content-Type.

    The detected type must be allowed. A declared type, when present, must be
    an image type; JPEG labelled as PNG is accepted because browsers guess the
    label from the extension.

    Returns:
        Tuple of (is_valid, detected_type, error_message).
    """
    detected_type = detect_content_type(data[:HEADER_SIZE])

    if detected_type is None:
        return (False, None, "Unable to detect an image type from file content")

    if detected_type not in allowed_types:
        return (
            False,
            detected_type,
            f"File type '{detected_type}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_types))}",
        )

    if declared_type:
        declared_class = declared_type.split(";")[0].strip().lower().split("/")[0]
        if declared_class != "image":
            return (
                False,
                detected_type,
                f"Declared type '{declared_type}' is not an image",
            )

    return (True, detected_type, None)


def is_valid_image(data: bytes) -> bool:
    """Check if data starts like a supported image file."""
    return detect_content_type(data[:HEADER_SIZE]) is not None
