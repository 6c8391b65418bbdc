"""Servidor API para ML-Inbound-Scraper."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional, Tuple, Type

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ..config import ServiceSettings
from ..core.service import AppointmentService, start_service
from ..exceptions import (
    ExtractionError,
    InboundScraperError,
    NavigationError,
    SessionNotFound,
    UpstreamRejected,
    UpstreamUnavailable,
)
from .models import (
    AppointmentModel, AppointmentsResponse, DownloadRequest, ErrorResponse, HealthResponse
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Primer tipo que coincide define estado HTTP y código de error
ERROR_STATUS: Tuple[Tuple[Type[InboundScraperError], int, str], ...] = (
    (SessionNotFound, 404, "ACCOUNT_NOT_FOUND"),
    (UpstreamRejected, 502, "UPSTREAM_REJECTED"),
    (UpstreamUnavailable, 502, "UPSTREAM_UNAVAILABLE"),
    (NavigationError, 502, "NAVIGATION_ERROR"),
    (ExtractionError, 500, "EXTRACTION_ERROR"),
    (InboundScraperError, 500, "SCRAPER_ERROR"),
)


def format_uptime(seconds: float) -> str:
    """
    Formatea el uptime en unidades legibles.

    Parameters
    ----------
    seconds : float
        Tiempo en segundos.

    Returns
    -------
    str
        Tiempo formateado (ej: "2d 3h 45m").
    """
    if seconds < 1:
        return f"{seconds:.2f}s"

    total_seconds = int(seconds)
    units = [
        ("w", 604800),
        ("d", 86400),
        ("h", 3600),
        ("m", 60),
        ("s", 1),
    ]

    parts = []
    for unit_name, unit_seconds in units:
        if total_seconds >= unit_seconds:
            unit_count = total_seconds // unit_seconds
            total_seconds %= unit_seconds
            parts.append(f"{unit_count}{unit_name}")

    # Sólo las 3 unidades más significativas
    return " ".join(parts[:3])


def error_status(exc: InboundScraperError) -> Tuple[int, str]:
    """
    Estado HTTP y código de error para una excepción del orquestador.

    Un rechazo del servicio remoto se devuelve con el mismo estado que
    respondió el servicio, siempre que sea un estado de error.
    """
    if isinstance(exc, UpstreamRejected) and exc.status_code >= 400:
        return exc.status_code, "UPSTREAM_REJECTED"

    for exc_type, status_code, error_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code, error_code
    return 500, "SCRAPER_ERROR"


def error_details(exc: InboundScraperError) -> Dict[str, Any]:
    """Detalles del error que se exponen al cliente."""
    if isinstance(exc, UpstreamRejected):
        return {"upstream_status": exc.status_code, "url": exc.url, "body": exc.body_text}
    if isinstance(exc, UpstreamUnavailable):
        return {"url": exc.url, "reason": exc.reason}
    if isinstance(exc, SessionNotFound):
        return {"account_id": exc.account_id}
    if isinstance(exc, NavigationError):
        return {"url": getattr(exc, "url", None)}
    return {}


class InboundAPI:
    """
    Servidor API para ML-Inbound-Scraper.

    Parameters
    ----------
    settings : ServiceSettings
        Configuración del servicio.
    service : Optional[AppointmentService]
        Servicio ya arrancado. Si no se indica, el lifespan lanza el
        navegador y arranca las cuentas, y lo cierra al detenerse.
    """

    def __init__(self, settings: ServiceSettings, *, service: Optional[AppointmentService] = None):
        self.settings = settings
        self.host = settings.host
        self.port = settings.port
        self.debug = settings.debug
        self.service = service
        self._owns_service = service is None
        self.start_time = time.time()
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Crea la aplicación FastAPI."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            """Arranca las sesiones antes de aceptar peticiones y las cierra al final."""
            logger.info("Iniciando ML-Inbound API")
            if self.service is None:
                self.service = await start_service(self.settings)
            try:
                yield
            finally:
                logger.info("Deteniendo ML-Inbound API")
                if self._owns_service and self.service is not None:
                    await self.service.registry.close()
                    self.service = None

        app = FastAPI(
            title="ML-Inbound-Scraper API",
            description="API para leer agendamientos de envíos y descargar sus etiquetas",
            version=API_VERSION,
            lifespan=lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._register_routes(app)
        self._register_exception_handlers(app)

        return app

    def _require_service(self) -> AppointmentService:
        if self.service is None:
            raise HTTPException(
                status_code=503,
                detail=ErrorResponse(
                    error="Servicio todavía no inicializado",
                    error_code="SERVICE_NOT_READY",
                ).model_dump(),
            )
        return self.service

    def _register_routes(self, app: FastAPI) -> None:
        """Registra las rutas de la API."""

        @app.get("/health", response_model=HealthResponse)
        async def health_check() -> HealthResponse:
            """Health check del servicio."""
            uptime_seconds = time.time() - self.start_time
            registry = self.service.registry if self.service is not None else None
            return HealthResponse(
                status="healthy" if registry is not None and len(registry) else "degraded",
                version=API_VERSION,
                uptime_seconds=uptime_seconds,
                uptime_formatted=format_uptime(uptime_seconds),
                sessions=len(registry) if registry is not None else 0,
                failed_accounts=sorted(registry.failures) if registry is not None else [],
            )

        @app.get("/agendamentos", response_model=AppointmentsResponse)
        async def read_appointments(
            account_id: int = Query(..., alias="id", description="Id de la cuenta"),
            shipment_id: Optional[str] = Query(None, alias="envioId", description="Filtro por envío"),
        ) -> AppointmentsResponse:
            """
            Lee los agendamientos con fecha reservada de una cuenta.

            Parameters
            ----------
            account_id : int
                Id de la cuenta (``?id=``).
            shipment_id : Optional[str]
                Id de envío a filtrar (``?envioId=``), sin ``#``.

            Returns
            -------
            AppointmentsResponse
                Cuenta y agendamientos en el orden de la tabla.
            """
            service = self._require_service()
            session = service.registry.lookup(account_id)
            shipment_id = shipment_id.strip() if shipment_id and shipment_id.strip() else None

            records = await service.read_appointments(account_id, shipment_id=shipment_id)
            return AppointmentsResponse(
                success=True,
                account=session.identifier,
                agendamentos=[AppointmentModel.from_record(record) for record in records],
            )

        @app.post("/baixar-pdf-agendamento")
        async def download_appointment_pdf(request: DownloadRequest) -> Response:
            """Descarga el PDF de etiquetas de un agendamiento."""
            service = self._require_service()
            if not request.resource_id:
                raise HTTPException(
                    status_code=400,
                    detail=ErrorResponse(
                        error="Se requiere numeroAgendamento",
                        error_code="MISSING_APPOINTMENT",
                    ).model_dump(),
                )

            payload = await service.fetch_appointment_artifact(request.id, request.resource_id)
            return Response(
                content=payload.content,
                media_type=payload.content_type,
                headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
            )

        @app.get("/")
        async def root() -> Dict[str, Any]:
            """Información básica del servicio."""
            return {
                "service": "ML-Inbound-Scraper API",
                "version": API_VERSION,
                "endpoints": {
                    "health": "/health",
                    "appointments": "/agendamentos?id=<id>&envioId=<envio>",
                    "download": "/baixar-pdf-agendamento",
                    "docs": "/docs",
                },
            }

    def _register_exception_handlers(self, app: FastAPI) -> None:
        """Registra manejadores de excepciones."""

        @app.exception_handler(InboundScraperError)
        async def scraper_exception_handler(request: Request, exc: InboundScraperError) -> JSONResponse:
            """Traduce las excepciones del orquestador a respuestas de error."""
            status_code, error_code = error_status(exc)
            if status_code >= 500:
                logger.error(f"{request.url.path}: {exc}")
            else:
                logger.warning(f"{request.url.path}: {exc}")

            error_response = ErrorResponse(
                error=str(exc),
                error_code=error_code,
                origin=exc.origin,
                details=error_details(exc),
            )
            return JSONResponse(status_code=status_code, content=error_response.model_dump())

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
            """Parámetros faltantes o inválidos."""
            error_response = ErrorResponse(
                error="Parámetros inválidos",
                error_code="INVALID_REQUEST",
                details={"errors": [error.get("msg") for error in exc.errors()]},
            )
            return JSONResponse(status_code=400, content=error_response.model_dump())

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
            """Maneja excepciones globales."""
            logger.error(f"Error no manejado: {exc!r}")

            error_response = ErrorResponse(
                error="Error interno del servidor",
                error_code="INTERNAL_ERROR",
                details={"path": request.url.path},
            )
            return JSONResponse(status_code=500, content=error_response.model_dump())

    def run(self) -> None:
        """Ejecuta el servidor."""
        uvicorn.run(
            self.app,
            host=self.host,
            port=self.port,
            log_level="debug" if self.debug else "info",
        )

    async def run_async(self) -> None:
        """Ejecuta el servidor de forma asíncrona."""
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="debug" if self.debug else "info",
        )
        server = uvicorn.Server(config)
        await server.serve()
