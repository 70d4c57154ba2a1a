"""Utility modules for the page comments API."""

from page_comments.utils.magic_bytes import (
    detect_content_type,
    is_valid_image,
    validate_content_type,
)


__all__ = ["detect_content_type", "is_valid_image", "validate_content_type"]
