"""Viewer identity through the SharePoint user and group APIs.

Authentication itself belongs to SharePoint: the caller's token is forwarded
and SharePoint answers who the caller is. This service only shapes that answer
and decides whether the viewer administers comments.
"""

from typing import TYPE_CHECKING

import structlog

from page_comments.comments.models import Viewer
from page_comments.core.redis import admin_cache_key


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from page_comments.sharepoint.client import SharePointClient


logger = structlog.get_logger(__name__)


class ViewerService:
    """Resolves the current viewer and their admin status."""

    def __init__(
        self,
        client: "SharePointClient",
        admin_group: str,
        redis: "Redis | None" = None,
        cache_ttl: int = 300,
        site_url: str = "",
    ):
        self.client = client
        self.admin_group = admin_group
        self.redis = redis
        self.cache_ttl = cache_ttl
        self.site_url = site_url

    async def get_current_viewer(self) -> Viewer:
        """Fetch the user the forwarded token belongs to."""
        return Viewer.from_sharepoint(await self.client.get_current_user())

    async def is_admin(self, viewer: Viewer) -> bool:
        """Check site admin flag or membership of the admin group.

        Members match by id or case-insensitive email. Any lookup failure
        counts as "not admin".
        """
        if viewer.is_site_admin:
            return True

        try:
            cached = await self._get_cached(viewer)
            if cached is not None:
                return cached

            members = await self.client.get_group_users(self.admin_group)
            email = viewer.email.lower()
            result = any(
                member.get("Id") == viewer.id
                or (email and (member.get("Email") or "").lower() == email)
                for member in members
            )

            await self._set_cached(viewer, result)
            return result

        except Exception as e:  # noqa: BLE001
            logger.warning(
                "admin_check_failed",
                group=self.admin_group,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def _get_cached(self, viewer: Viewer) -> bool | None:
        if not self.redis:
            return None
        value = await self.redis.get(admin_cache_key(self.site_url, viewer.id))
        if value is None:
            return None
        return value == "1"

    async def _set_cached(self, viewer: Viewer, result: bool) -> None:
        if not self.redis:
            return
        await self.redis.set(
            admin_cache_key(self.site_url, viewer.id),
            "1" if result else "0",
            ex=self.cache_ttl,
        )
