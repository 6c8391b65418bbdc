"""Tests para la configuración de cuentas y del servicio."""

from __future__ import annotations

import json

import pytest

from ml_inbound_scraper.config import ServiceSettings, TargetSite, load_accounts, parse_accounts
from ml_inbound_scraper.exceptions import ConfigError


def test_accounts_are_sorted_by_id_and_aliases_resolved():
    accounts = parse_accounts({
        "accounts": [
            {"id": 2, "name": "Loja Dois", "cookieFileName": "Loja Dois"},
            {"id": 1, "sigla": "L1", "name": "Loja Um", "cookieFileName": "loja1"},
        ]
    })

    assert [account.id for account in accounts] == [1, 2]
    assert accounts[0].identifier == "L1"
    assert accounts[1].identifier == "Loja Dois"
    assert accounts[1].cookie_file_name == "Loja Dois"


@pytest.mark.parametrize(
    "data",
    [
        {"accounts": []},
        {},
        {"accounts": [{"id": 1}]},
        {"accounts": [{"id": 1, "cookieFileName": "a"}, {"id": 1, "cookieFileName": "b"}]},
    ],
)
def test_invalid_account_files_are_config_errors(data):
    with pytest.raises(ConfigError):
        parse_accounts(data)


def test_load_accounts_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_accounts(tmp_path / "cred.json")


def test_load_accounts_bad_json(tmp_path):
    path = tmp_path / "cred.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_accounts(path)


def test_load_accounts_from_file(tmp_path):
    path = tmp_path / "cred.json"
    path.write_text(json.dumps({"accounts": [{"id": 5, "cookieFileName": "x"}]}), encoding="utf-8")

    assert [account.id for account in load_accounts(path)] == [5]


def test_settings_reject_inverted_delay_window():
    with pytest.raises(ConfigError):
        ServiceSettings(min_delay=5, max_delay=1)


def test_settings_reject_zero_attempts():
    with pytest.raises(ConfigError):
        ServiceSettings(max_attempts=0)


def test_target_urls_embed_resource_id():
    target = TargetSite()

    assert target.hub_url(555).endswith("/shipping/inbounds/555/hub")
    assert target.artifact_url("555").endswith("/inbounds/555/labels/details/inbound")
    assert target.home_url == "https://www.mercadolivre.com.br/"
