"""Tests para el almacén de cookies por cuenta."""

from __future__ import annotations

import json

import pytest

from ml_inbound_scraper.config import TargetSite
from ml_inbound_scraper.core.identity import IdentityExtractor
from ml_inbound_scraper.exceptions import CookieStoreNotFound, CookieStoreParseError
from ml_inbound_scraper.utils.cookies import CookieJar
from ml_inbound_scraper.utils.storage import CookieStore, candidate_file_names, normalize_cookie_name

from conftest import make_cookie, write_cookies


def test_candidate_names_order_for_spaced_name():
    assert candidate_file_names("Minha Conta") == [
        "Minha-Conta-cookies.json",
        "Minha-Conta.json",
        "Minha Conta-cookies.json",
        "Minha Conta.json",
    ]


def test_candidate_names_try_given_json_first_without_duplicates():
    assert candidate_file_names("loja.json") == [
        "loja.json",
        "loja.json-cookies.json",
        "loja.json.json",
    ]


def test_normalize_collapses_whitespace_runs():
    assert normalize_cookie_name("a  b\tc") == "a-b-c"


def test_load_uses_first_existing_candidate(tmp_path):
    write_cookies(tmp_path / "Minha Conta.json", [make_cookie("late")])
    write_cookies(tmp_path / "Minha-Conta.json", [make_cookie("early")])

    jar, path = CookieStore(tmp_path).load("Minha Conta")

    assert path == tmp_path / "Minha-Conta.json"
    assert [cookie.name for cookie in jar] == ["early"]


def test_load_missing_lists_every_candidate(tmp_path):
    with pytest.raises(CookieStoreNotFound) as info:
        CookieStore(tmp_path).load("nada")

    assert [path.name for path in info.value.tried] == candidate_file_names("nada")


@pytest.mark.parametrize("content", ["{not json", '{"name": "x"}', '[{"value": "no-name"}]'])
def test_load_rejects_malformed_files(tmp_path, content):
    (tmp_path / "conta-cookies.json").write_text(content, encoding="utf-8")

    with pytest.raises(CookieStoreParseError):
        CookieStore(tmp_path).load("conta")


def test_save_then_load_round_trip(tmp_path):
    store = CookieStore(tmp_path / "cookies")
    jar = CookieJar([
        make_cookie("ssid", "abc", http_only=True, secure=True, same_site="Lax", expires=1893456000),
        make_cookie("_ga", "1", domain=".google.com"),
    ])
    path = store.path_for("Conta Nova")

    store.save(path, jar)
    loaded, loaded_path = store.load("Conta Nova")

    assert loaded_path == path
    assert loaded == jar
    assert json.loads(path.read_text(encoding="utf-8"))[0]["httpOnly"] is True


def test_load_skips_malformed_candidate_for_next_valid_one(tmp_path):
    (tmp_path / "Minha-Conta-cookies.json").write_text("{broken", encoding="utf-8")
    write_cookies(tmp_path / "Minha Conta.json", [make_cookie("ssid", "ok")])

    jar, path = CookieStore(tmp_path).load("Minha Conta")

    assert path == tmp_path / "Minha Conta.json"
    assert [(cookie.name, cookie.value) for cookie in jar] == [("ssid", "ok")]


def test_load_reports_first_parse_error_when_no_candidate_parses(tmp_path):
    (tmp_path / "conta-cookies.json").write_text("{broken", encoding="utf-8")
    (tmp_path / "conta.json").write_text('{"name": "x"}', encoding="utf-8")

    with pytest.raises(CookieStoreParseError) as info:
        CookieStore(tmp_path).load("conta")

    assert info.value.path == tmp_path / "conta-cookies.json"


def test_stored_http_only_cookie_reaches_header_without_attributes(tmp_path):
    target = TargetSite(cookie_priority=(), allowed_domains=(".example.com",))
    (tmp_path / "conta-cookies.json").write_text(
        json.dumps([{
            "name": "sid",
            "value": "abc",
            "domain": ".example.com",
            "path": "/",
            "expires": -1,
            "httpOnly": True,
            "secure": True,
            "sameSite": "Unspecified",
        }]),
        encoding="utf-8",
    )

    jar, _ = CookieStore(tmp_path).load("conta")
    header = IdentityExtractor(target).serialize_cookies(jar.records)

    assert header == "sid=abc"
    assert jar.records[0].http_only is True
    assert jar.records[0].to_cookie_param().same_site is None
