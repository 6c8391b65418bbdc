"""Tests para el gateway HTTP."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from ml_inbound_scraper.api.server import InboundAPI, error_status, format_uptime
from ml_inbound_scraper.config import ServiceSettings
from ml_inbound_scraper.core.appointments import AppointmentRecord
from ml_inbound_scraper.core.service import ArtifactPayload
from ml_inbound_scraper.exceptions import (
    ExtractionError,
    NavigationFailed,
    SessionNotFound,
    UpstreamRejected,
    UpstreamUnavailable,
)


class StubSession:
    def __init__(self, account_id: int, identifier: str) -> None:
        self.account_id = account_id
        self.identifier = identifier


class StubRegistry:
    def __init__(self, sessions: Dict[int, StubSession]) -> None:
        self._sessions = sessions
        self.failures: Dict[int, str] = {3: "cookies"}
        self.closed = False

    def lookup(self, account_id: int) -> StubSession:
        try:
            return self._sessions[account_id]
        except KeyError:
            raise SessionNotFound(account_id) from None

    def __len__(self) -> int:
        return len(self._sessions)

    async def close(self) -> None:
        self.closed = True


class StubService:
    def __init__(self) -> None:
        self.registry = StubRegistry({1: StubSession(1, "AAA")})
        self.records: List[AppointmentRecord] = [
            AppointmentRecord("#100", "10", "12/06", "R$ 5", "Pendente"),
        ]
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def read_appointments(self, account_id: int, shipment_id: Optional[str] = None):
        self.registry.lookup(account_id)
        self.calls.append(("read", account_id, shipment_id))
        if self.error is not None:
            raise self.error
        return self.records

    async def fetch_appointment_artifact(self, account_id: int, resource_id: str) -> ArtifactPayload:
        self.registry.lookup(account_id)
        self.calls.append(("fetch", account_id, resource_id))
        if self.error is not None:
            raise self.error
        return ArtifactPayload(content=b"%PDF-1.4", filename=f"agendamento_{resource_id}.pdf")


@pytest.fixture
def service() -> StubService:
    return StubService()


@pytest.fixture
def client(service) -> TestClient:
    api = InboundAPI(ServiceSettings(), service=service)
    return TestClient(api.app, raise_server_exceptions=False)


def test_appointments_response_shape(client, service):
    response = client.get("/agendamentos", params={"id": 1, "envioId": "100"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "account": "AAA",
        "agendamentos": [
            {
                "envioId": "#100",
                "unidades": "10",
                "dataReservada": "12/06",
                "custoAplicado": "R$ 5",
                "status": "Pendente",
            }
        ],
    }
    assert service.calls == [("read", 1, "100")]


def test_blank_shipment_filter_is_ignored(client, service):
    client.get("/agendamentos", params={"id": 1, "envioId": "  "})

    assert service.calls == [("read", 1, None)]


def test_missing_account_parameter_is_bad_request(client):
    response = client.get("/agendamentos")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_REQUEST"


def test_unknown_account_is_not_found(client):
    response = client.get("/agendamentos", params={"id": 42})

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "ACCOUNT_NOT_FOUND"
    assert body["details"] == {"account_id": 42}


def test_pdf_download(client, service):
    response = client.post("/baixar-pdf-agendamento", json={"id": 1, "numeroAgendamento": 555})

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4"
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'attachment; filename="agendamento_555.pdf"'
    assert service.calls == [("fetch", 1, "555")]


def test_upstream_rejection_is_forwarded_verbatim(client, service):
    service.error = UpstreamRejected(403, b"token invalido", "https://example/api")

    response = client.post("/baixar-pdf-agendamento", json={"id": 1, "numeroAgendamento": "555"})

    assert response.status_code == 403
    body = response.json()
    assert body["origin"] == "upstream"
    assert body["details"]["body"] == "token invalido"
    assert body["details"]["upstream_status"] == 403


def test_unexpected_error_is_internal(client, service):
    service.error = RuntimeError("boom")

    response = client.get("/agendamentos", params={"id": 1})

    assert response.status_code == 500
    assert response.json()["error_code"] == "INTERNAL_ERROR"


def test_health_reports_sessions(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["sessions"] == 1
    assert body["failed_accounts"] == [3]


def test_injected_service_survives_lifespan(service):
    api = InboundAPI(ServiceSettings(), service=service)

    with TestClient(api.app) as client:
        assert client.get("/").status_code == 200

    assert not service.registry.closed


@pytest.mark.parametrize(
    "exc, expected",
    [
        (SessionNotFound(1), (404, "ACCOUNT_NOT_FOUND")),
        (UpstreamRejected(429, b""), (429, "UPSTREAM_REJECTED")),
        (UpstreamRejected(302, b""), (502, "UPSTREAM_REJECTED")),
        (UpstreamUnavailable("u", "r"), (502, "UPSTREAM_UNAVAILABLE")),
        (NavigationFailed("u", 3), (502, "NAVIGATION_ERROR")),
        (ExtractionError("x"), (500, "EXTRACTION_ERROR")),
    ],
)
def test_error_status_mapping(exc, expected):
    assert error_status(exc) == expected


def test_format_uptime():
    assert format_uptime(0.5) == "0.50s"
    assert format_uptime(90061) == "1d 1h 1m"
