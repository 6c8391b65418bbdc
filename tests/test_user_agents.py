"""Tests para client hints derivados del user agent."""

from __future__ import annotations

from ml_inbound_scraper.utils.user_agents import (
    build_client_hint_headers,
    build_user_agent_metadata,
    choose_user_agent,
    is_chrome_user_agent,
)

MAC_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)
EDGE_UA = MAC_UA + " Edg/126.0.0.0"


def test_client_hints_match_user_agent():
    headers = build_client_hint_headers(MAC_UA)

    assert headers == {
        "sec-ch-ua": '"Not/A)Brand";v="8", "Chromium";v="126", "Google Chrome";v="126"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"macOS"',
    }


def test_metadata_uses_same_brands():
    metadata = build_user_agent_metadata(MAC_UA)

    assert [brand.brand for brand in metadata.brands] == ["Not/A)Brand", "Chromium", "Google Chrome"]
    assert metadata.platform == "macOS"
    assert metadata.mobile is False


def test_chrome_detection_excludes_edge():
    assert is_chrome_user_agent(MAC_UA)
    assert not is_chrome_user_agent(EDGE_UA)


def test_choose_from_configured_candidates():
    assert choose_user_agent([MAC_UA]) == MAC_UA
