"""Tests para las operaciones del servicio sobre sesiones vivas."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ml_inbound_scraper.config import AccountConfig, ServiceSettings
from ml_inbound_scraper.core.downloader import ArtifactDownloader
from ml_inbound_scraper.core.service import build_service
from ml_inbound_scraper.exceptions import SessionNotFound

from conftest import LINUX_UA, FakeContext, FakeProcess, make_cookie, write_cookies

TABLE = {
    "headers": ["Envio", "Unidades", "Data reservada", "Custo aplicado", "Status"],
    "rows": [["#100", "10", "12/06", "R$ 5", "Pendente"]],
}


async def started_service(tmp_path, context: FakeContext):
    write_cookies(tmp_path / "a-cookies.json", [make_cookie("ssid", "s")])
    settings = ServiceSettings(cookies_dir=tmp_path, min_delay=0, max_delay=0, user_agents=(LINUX_UA,))
    service = build_service(settings, FakeProcess([context]))
    await service.registry.initialize([AccountConfig(id=7, sigla="AAA", cookieFileName="a")])
    return service


@pytest.mark.asyncio
async def test_read_navigates_to_listing_every_time(tmp_path, target):
    context = FakeContext(evaluations={"querySelectorAll('tr')": TABLE})
    service = await started_service(tmp_path, context)

    first = await service.read_appointments(7)
    second = await service.read_appointments(7, shipment_id="999")

    assert [record.shipment_id for record in first] == ["#100"]
    assert second == []
    assert context.visited == [target.home_url, target.listing_url, target.listing_url]
    await service.registry.close()


@pytest.mark.asyncio
async def test_operations_on_one_account_do_not_interleave(tmp_path):
    context = FakeContext(evaluations={"querySelectorAll('tr')": TABLE})
    service = await started_service(tmp_path, context)
    events = []

    async def on_navigate(url: str) -> None:
        events.append("start")
        await asyncio.sleep(0.01)
        events.append("end")

    context.on_navigate = on_navigate

    await asyncio.gather(
        service.read_appointments(7),
        service.read_appointments(7),
        service.read_appointments(7),
    )

    assert events == ["start", "end"] * 3
    await service.registry.close()


@pytest.mark.asyncio
async def test_artifact_fetch_uses_hub_identity(tmp_path, target):
    context = FakeContext(cookies=[make_cookie("ssid", "s")], evaluations={"meta[name": "tok"})
    service = await started_service(tmp_path, context)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers["x-csrf-token"]
        seen["referer"] = request.headers["referer"]
        return httpx.Response(200, content=b"%PDF")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        service._downloader = ArtifactDownloader(client=client)
        payload = await service.fetch_appointment_artifact(7, "555")

    assert payload.content == b"%PDF"
    assert payload.filename == "agendamento_555.pdf"
    assert payload.content_type == "application/pdf"
    assert context.visited[-1] == target.hub_url("555")
    assert seen == {
        "url": target.artifact_url("555"),
        "token": "tok",
        "referer": target.hub_url("555"),
    }
    await service.registry.close()


@pytest.mark.asyncio
async def test_unknown_account_is_rejected(tmp_path):
    service = await started_service(tmp_path, FakeContext())

    with pytest.raises(SessionNotFound):
        await service.read_appointments(99)
    with pytest.raises(SessionNotFound):
        await service.fetch_appointment_artifact(99, "1")
    await service.registry.close()
