"""Shared fixtures.

SharePoint is replaced by ``FakeSharePoint``, an in-memory list served through
``httpx.MockTransport``, so the real client, store and services run unchanged.
"""

import json
import os
import re
import tempfile
from collections.abc import Callable
from typing import Any
from urllib.parse import unquote

import httpx
import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="page-comments-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from page_comments.config import get_settings  # noqa: E402
from page_comments.main import create_app  # noqa: E402
from page_comments.sharepoint.client import SharePointClient  # noqa: E402


SITE_URL = "https://contoso.sharepoint.com/sites/intranet"
API_URL = f"{SITE_URL}/_api"
SITE_PATH = "/sites/intranet"
LIST_TITLE = "Page Comments"
PAGE_URL = f"{SITE_URL}/SitePages/Home.aspx"

ALICE = {
    "Id": 7,
    "Title": "Alice Martin",
    "Email": "alice@contoso.com",
    "UserPrincipalName": "alice@contoso.com",
    "IsSiteAdmin": False,
}
BOB = {
    "Id": 9,
    "Title": "Bob Stone",
    "Email": "bob@contoso.com",
    "UserPrincipalName": "bob@contoso.com",
    "IsSiteAdmin": False,
}
CAROL = {
    "Id": 11,
    "Title": "Carol Reyes",
    "Email": "Carol@Contoso.com",
    "UserPrincipalName": "carol@contoso.com",
    "IsSiteAdmin": False,
}
OWNER = {
    "Id": 1,
    "Title": "Site Owner",
    "Email": "owner@contoso.com",
    "UserPrincipalName": "owner@contoso.com",
    "IsSiteAdmin": True,
}

TOKENS = {
    "alice-token": ALICE,
    "bob-token": BOB,
    "carol-token": CAROL,
    "owner-token": OWNER,
}

ITEM_PATTERN = re.compile(r"/items\((\d+)\)")
FILTER_PATTERN = re.compile(r"^PageURL eq '(.*)'$")
FILE_NAME_PATTERN = re.compile(r"add\(FileName='(.*)'\)$")


def _blob(value: list[dict[str, Any]] | str | None) -> str | None:
    """Lists are encoded; raw strings (possibly malformed) are stored as given."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


class FakeSharePoint:
    """In-memory SharePoint site with one comments list and one admin group."""

    def __init__(self) -> None:
        self.items: dict[int, dict[str, Any]] = {}
        self.attachments: dict[int, list[dict[str, Any]]] = {}
        self.admin_members: list[dict[str, Any]] = [
            {"Id": 11, "Title": "Carol Reyes", "Email": "carol@contoso.com"}
        ]
        self.requests: list[httpx.Request] = []
        self.fail_groups_with: int | None = None
        self.fail_items_with: int | None = None
        self._next_id = 1

    # Seeding

    def add_page(
        self,
        page_url: str = PAGE_URL,
        comments: list[dict[str, Any]] | str | None = None,
        likes: list[dict[str, Any]] | str | None = None,
        attachments: list[str] | None = None,
    ) -> int:
        item_id = self._next_id
        self._next_id += 1
        self.items[item_id] = {
            "ID": item_id,
            "Title": page_url.rsplit("/", 1)[-1],
            "PageURL": page_url,
            "Comments": _blob(comments),
            "Likes": _blob(likes),
        }
        self.attachments[item_id] = [
            self._attachment(item_id, name) for name in attachments or []
        ]
        return item_id

    def comments_of(self, item_id: int) -> list[dict[str, Any]]:
        return json.loads(self.items[item_id]["Comments"] or "[]")

    def likes_of(self, item_id: int) -> list[dict[str, Any]]:
        return json.loads(self.items[item_id]["Likes"] or "[]")

    def writes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def _attachment(self, item_id: int, name: str) -> dict[str, Any]:
        return {
            "FileName": name,
            "ServerRelativeUrl": (
                f"{SITE_PATH}/Lists/{LIST_TITLE}/Attachments/{item_id}/{name}"
            ),
        }

    # Transport

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.raw_path.decode().split("?", 1)[0])
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")

        if path.endswith("/web/currentuser"):
            user = TOKENS.get(token)
            if user is None:
                return httpx.Response(401, json={"error": "invalid token"})
            return httpx.Response(200, json=user)

        if "/web/sitegroups/" in path:
            if self.fail_groups_with:
                return httpx.Response(self.fail_groups_with, json={"error": "boom"})
            return httpx.Response(200, json={"value": self.admin_members})

        if f"/web/lists/getbytitle('{LIST_TITLE}')" not in path:
            return httpx.Response(404, json={"error": "list not found"})

        if self.fail_items_with:
            return httpx.Response(self.fail_items_with, json={"error": "boom"})

        match = ITEM_PATTERN.search(path)
        if match is None:
            if request.method == "GET":
                return self._query(request)
            return self._create(request)

        item_id = int(match.group(1))
        if item_id not in self.items:
            return httpx.Response(404, json={"error": "item not found"})

        if path.endswith("/AttachmentFiles"):
            return httpx.Response(200, json={"value": self.attachments[item_id]})

        name_match = FILE_NAME_PATTERN.search(path)
        if name_match:
            name = name_match.group(1).replace("''", "'")
            attachment = self._attachment(item_id, name)
            self.attachments[item_id].append(attachment)
            return httpx.Response(200, json=attachment)

        if request.headers.get("X-HTTP-Method") == "MERGE":
            self.items[item_id].update(json.loads(request.content))
            return httpx.Response(204)

        return httpx.Response(405)

    def _query(self, request: httpx.Request) -> httpx.Response:
        match = FILTER_PATTERN.match(request.url.params.get("$filter", ""))
        page_url = match.group(1).replace("''", "'") if match else None
        value = [
            {
                "ID": item["ID"],
                "Comments": item["Comments"],
                "Likes": item["Likes"],
                "FieldValuesAsText": {
                    "Comments": item["Comments"] or "",
                    "Likes": item["Likes"] or "",
                },
            }
            for item in self.items.values()
            if item["PageURL"] == page_url
        ]
        return httpx.Response(200, json={"value": value})

    def _create(self, request: httpx.Request) -> httpx.Response:
        fields = json.loads(request.content)
        item_id = self._next_id
        self._next_id += 1
        self.items[item_id] = {"ID": item_id, "Likes": None, **fields}
        self.attachments[item_id] = []
        return httpx.Response(201, json={"ID": item_id, "Id": item_id, **fields})


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def fake_sharepoint() -> FakeSharePoint:
    return FakeSharePoint()


@pytest.fixture
def http_client(fake_sharepoint: FakeSharePoint) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_sharepoint.handle))


@pytest.fixture
def sharepoint_factory(
    http_client: httpx.AsyncClient,
) -> Callable[[str], SharePointClient]:
    """Build a client for a given caller token."""

    def _factory(token: str = "alice-token") -> SharePointClient:
        return SharePointClient(
            http=http_client,
            api_url=API_URL,
            list_title=LIST_TITLE,
            access_token=token,
        )

    return _factory


@pytest.fixture
def sharepoint_client(sharepoint_factory) -> SharePointClient:
    return sharepoint_factory("alice-token")


@pytest.fixture
def make_comment() -> Callable[..., dict[str, Any]]:
    """Build a stored comment entry as it appears in the ``Comments`` blob."""

    def _make(
        comment_id: str,
        parent: str | None = None,
        userid: int = 7,
        content: str | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        return {
            "id": comment_id,
            "parent": parent,
            "content": content or f"comment {comment_id}",
            "created": "2024-05-01T10:00:00.000Z",
            "modified": "2024-05-01T10:00:00.000Z",
            "fullname": "Alice Martin" if userid == 7 else "Bob Stone",
            "userid": userid,
            "upvote_count": 0,
            "user_has_upvoted": False,
            "pings": {},
            **extra,
        }

    return _make


@pytest.fixture
def app(http_client: httpx.AsyncClient) -> FastAPI:
    """Application wired to the fake SharePoint, without running the lifespan."""
    get_settings.cache_clear()
    application = create_app()
    application.state.http_client = http_client
    application.state.redis = None
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client authenticated as Alice."""
    return TestClient(app, headers={"Authorization": "Bearer alice-token"})


@pytest.fixture
def page_url() -> str:
    return PAGE_URL
