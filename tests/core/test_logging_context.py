"""Tests for request context and log masking."""

from page_comments.core.context import (
    clear_context,
    get_context,
    set_page_url,
    set_request_id,
    set_user_id,
)
from page_comments.core.logging import filter_sensitive_data


def test_context_roundtrip() -> None:
    set_request_id("req-1")
    set_user_id(7)
    set_page_url("https://contoso.sharepoint.com/sites/intranet/SitePages/Home.aspx")

    context = get_context()

    assert context["request_id"] == "req-1"
    assert context["user_id"] == "7"
    assert context["page_url"].endswith("Home.aspx")

    clear_context()
    assert "user_id" not in get_context()


def test_tokens_are_masked() -> None:
    event = filter_sensitive_data(
        None,
        "info",
        {
            "event": "sharepoint_call",
            "access_token": "eyJ0eXAiOiJKV1Qi",
            "headers": {"Authorization": "Bearer abcdef"},
            "page_url": "https://contoso.sharepoint.com",
        },
    )

    assert event["access_token"].startswith("ey")
    assert "0eXAiOiJKV1" not in event["access_token"]
    assert event["headers"]["Authorization"] != "Bearer abcdef"
    assert event["page_url"] == "https://contoso.sharepoint.com"
