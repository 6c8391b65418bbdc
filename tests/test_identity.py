"""Tests para el puente sesión -> request."""

from __future__ import annotations

import pytest

from ml_inbound_scraper.core.identity import COOKIE_SENTINEL, TOKEN_SENTINEL, IdentityExtractor
from ml_inbound_scraper.exceptions import TokenNotFound

from conftest import LINUX_UA, FakeContext, make_cookie, make_session

PRELOADED = "__PRELOADED_STATE__"
META = "meta[name"
HIDDEN = "input[name"


@pytest.fixture
def extractor(target):
    return IdentityExtractor(target)


@pytest.mark.asyncio
async def test_token_sources_are_tried_in_order(tmp_path, extractor):
    context = FakeContext(evaluations={PRELOADED: None, META: "from-meta", HIDDEN: "from-input"})
    session = make_session(context, tmp_path / "c.json")

    assert await extractor.discover_token(session) == "from-meta"


@pytest.mark.asyncio
async def test_preloaded_state_wins(tmp_path, extractor):
    context = FakeContext(evaluations={PRELOADED: "from-state", META: "from-meta"})
    session = make_session(context, tmp_path / "c.json")

    assert await extractor.discover_token(session) == "from-state"


@pytest.mark.asyncio
async def test_failing_source_falls_through(tmp_path, extractor):
    context = FakeContext(evaluations={PRELOADED: RuntimeError("page gone"), HIDDEN: "from-input"})
    session = make_session(context, tmp_path / "c.json")

    assert await extractor.discover_token(session) == "from-input"


@pytest.mark.asyncio
async def test_no_token_raises_typed_error(tmp_path, extractor):
    session = make_session(FakeContext(), tmp_path / "c.json")

    with pytest.raises(TokenNotFound) as info:
        await extractor.discover_token(session)

    assert info.value.tried == ["preloaded_state", "meta_tag", "hidden_input"]


@pytest.mark.asyncio
async def test_missing_token_degrades_to_sentinel(tmp_path, extractor):
    context = FakeContext(cookies=[make_cookie("ssid", "s")])
    session = make_session(context, tmp_path / "c.json")

    identity = await extractor.extract(session, "555")

    assert identity.anti_forgery_token == TOKEN_SENTINEL
    assert not identity.token_found
    assert identity.headers["x-csrf-token"] == TOKEN_SENTINEL
    assert identity.headers["cookie"] == "ssid=s"


@pytest.mark.asyncio
async def test_identity_uses_privileged_cookie_channel(tmp_path, extractor):
    context = FakeContext(
        cookies=[make_cookie("ssid", "s", http_only=True), make_cookie("_d2id", "d")],
        evaluations={META: "tok"},
    )
    session = make_session(context, tmp_path / "c.json")

    identity = await extractor.extract(session, "555")

    assert context.get_cookies_calls == 1
    assert identity.cookie_header == "_d2id=d; ssid=s"
    assert identity.token_found


@pytest.mark.asyncio
async def test_headers_describe_session_fingerprint(tmp_path, extractor, target):
    context = FakeContext(cookies=[make_cookie("ssid")], evaluations={META: "tok"})
    session = make_session(context, tmp_path / "c.json")

    headers = (await extractor.extract(session, "555")).headers

    assert list(headers) == [
        "accept",
        "accept-language",
        "cookie",
        "origin",
        "referer",
        "sec-ch-ua",
        "sec-ch-ua-mobile",
        "sec-ch-ua-platform",
        "sec-fetch-dest",
        "sec-fetch-mode",
        "sec-fetch-site",
        "user-agent",
        "x-csrf-token",
    ]
    assert headers["referer"] == target.hub_url("555")
    assert headers["origin"] == "https://myaccount.mercadolivre.com.br"
    assert headers["user-agent"] == LINUX_UA
    assert headers["sec-ch-ua-platform"] == '"Linux"'
    assert headers["sec-ch-ua-mobile"] == "?0"
    assert '"Google Chrome";v="126"' in headers["sec-ch-ua"]


@pytest.mark.asyncio
async def test_empty_jar_degrades_to_cookie_sentinel(tmp_path, extractor):
    session = make_session(FakeContext(evaluations={META: "tok"}), tmp_path / "c.json")

    identity = await extractor.extract(session, "1")

    assert identity.cookie_header == COOKIE_SENTINEL


@pytest.mark.asyncio
async def test_fresh_identity_per_extraction(tmp_path, extractor):
    context = FakeContext(cookies=[make_cookie("ssid", "1")], evaluations={META: "tok"})
    session = make_session(context, tmp_path / "c.json")

    first = await extractor.extract(session, "1")
    context.cookies = [make_cookie("ssid", "2")]
    second = await extractor.extract(session, "1")

    assert first.cookie_header == "ssid=1"
    assert second.cookie_header == "ssid=2"
