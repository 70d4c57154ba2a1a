"""Async SharePoint REST client.

Thin wrapper over the SharePoint ``_api`` endpoints the comment store needs:
- List item query / create / merge-update on the comments list
- Attachment listing and upload on a list item
- Current user and site group membership lookups

Requests carry the caller's bearer token, so SharePoint applies the caller's
own permissions. JSON light (``odata=nometadata``) is used throughout.
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog


logger = structlog.get_logger(__name__)

JSON_LIGHT = "application/json;odata=nometadata"


class SharePointError(Exception):
    """Base error for SharePoint operations."""

    def __init__(self, message: str, code: str = "sharepoint_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class SharePointConnectionError(SharePointError):
    """SharePoint could not be reached or timed out."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "sharepoint_unreachable")


class SharePointResponseError(SharePointError):
    """SharePoint answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message, "sharepoint_response_error")


def odata_literal(value: str) -> str:
    """Quote a value as an OData string literal."""
    return "'" + value.replace("'", "''") + "'"


class SharePointClient:
    """REST client bound to one site, one list and one caller token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_url: str,
        list_title: str,
        access_token: str,
    ) -> None:
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.list_title = list_title
        self._access_token = access_token

    @property
    def list_url(self) -> str:
        return f"{self.api_url}/web/lists/getbytitle({quote(odata_literal(self.list_title))})"

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "Accept": JSON_LIGHT,
            "Authorization": f"Bearer {self._access_token}",
        }
        headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.http.request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=headers or self._headers(),
            )
        except httpx.TimeoutException as e:
            logger.error("sharepoint_timeout", method=method, url=url, error=str(e))
            raise SharePointConnectionError("SharePoint request timed out") from e
        except httpx.RequestError as e:
            logger.error("sharepoint_request_error", method=method, url=url, error=str(e))
            raise SharePointConnectionError(f"SharePoint request error: {e}") from e

        if response.is_error:
            logger.error(
                "sharepoint_request_failed",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise SharePointResponseError(
                response.status_code,
                f"SharePoint API error: {response.status_code}",
            )

        return response

    @staticmethod
    def _values(response: httpx.Response) -> list[dict[str, Any]]:
        return response.json().get("value", [])

    # ==========================================================================
    # List items
    # ==========================================================================

    async def get_items(
        self,
        filter: str,
        select: list[str] | None = None,
        expand: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Query items of the comments list."""
        params = {"$filter": filter}
        if select:
            params["$select"] = ",".join(select)
        if expand:
            params["$expand"] = ",".join(expand)

        response = await self._request("GET", f"{self.list_url}/items", params=params)
        return self._values(response)

    async def add_item(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Create a list item and return its field values."""
        response = await self._request(
            "POST",
            f"{self.list_url}/items",
            json=fields,
            headers=self._headers(**{"Content-Type": JSON_LIGHT}),
        )
        return response.json()

    async def update_item(self, item_id: int, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into an existing list item (last writer wins)."""
        await self._request(
            "POST",
            f"{self.list_url}/items({item_id})",
            json=fields,
            headers=self._headers(
                **{
                    "Content-Type": JSON_LIGHT,
                    "X-HTTP-Method": "MERGE",
                    "IF-MATCH": "*",
                }
            ),
        )

    # ==========================================================================
    # Attachments
    # ==========================================================================

    async def get_attachments(self, item_id: int) -> list[dict[str, Any]]:
        """List attachment files (``FileName``, ``ServerRelativeUrl``) of an item."""
        response = await self._request(
            "GET", f"{self.list_url}/items({item_id})/AttachmentFiles"
        )
        return self._values(response)

    async def add_attachment(
        self, item_id: int, filename: str, content: bytes
    ) -> dict[str, Any]:
        """Upload a file as an attachment of a list item."""
        url = (
            f"{self.list_url}/items({item_id})/AttachmentFiles/"
            f"add(FileName={quote(odata_literal(filename))})"
        )
        response = await self._request(
            "POST",
            url,
            content=content,
            headers=self._headers(**{"Content-Type": "application/octet-stream"}),
        )
        return response.json()

    # ==========================================================================
    # Users and groups
    # ==========================================================================

    async def get_current_user(self) -> dict[str, Any]:
        """Fetch the user the bearer token belongs to."""
        response = await self._request("GET", f"{self.api_url}/web/currentuser")
        return response.json()

    async def get_group_users(self, group_name: str) -> list[dict[str, Any]]:
        """List the members of a site group."""
        url = (
            f"{self.api_url}/web/sitegroups/"
            f"getbyname({quote(odata_literal(group_name))})/users"
        )
        response = await self._request("GET", url)
        return self._values(response)
