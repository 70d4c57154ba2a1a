"""SharePoint REST access for the comments list."""

from page_comments.sharepoint.client import (
    SharePointClient,
    SharePointConnectionError,
    SharePointError,
    SharePointResponseError,
    odata_literal,
)


__all__ = [
    "SharePointClient",
    "SharePointConnectionError",
    "SharePointError",
    "SharePointResponseError",
    "odata_literal",
]
