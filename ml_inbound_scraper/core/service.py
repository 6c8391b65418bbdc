"""Operaciones expuestas al gateway: leer agendamientos y bajar su PDF."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..config import ServiceSettings, TargetSite, load_accounts
from ..utils.storage import CookieStore
from .appointments import AppointmentReader, AppointmentRecord
from .browser import AutomationProcess
from .downloader import ArtifactDownloader
from .identity import IdentityExtractor
from .navigation import NavigationDriver
from .session import ContextFactory, SessionRegistry

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class ArtifactPayload:
    """PDF descargado de un agendamiento."""

    content: bytes
    filename: str
    content_type: str = PDF_CONTENT_TYPE


class AppointmentService:
    """
    Orquesta navegación, extracción y petición directa por cuenta.

    Toda secuencia sobre una misma cuenta corre bajo el lock de su sesión;
    cuentas distintas corren en paralelo sin coordinación.
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        navigator: NavigationDriver,
        reader: AppointmentReader,
        extractor: IdentityExtractor,
        downloader: ArtifactDownloader,
        target: TargetSite,
    ) -> None:
        self.registry = registry
        self._navigator = navigator
        self._reader = reader
        self._extractor = extractor
        self._downloader = downloader
        self._target = target

    async def read_appointments(
        self, account_id: int, shipment_id: Optional[str] = None
    ) -> List[AppointmentRecord]:
        """
        Lee los agendamientos vigentes de una cuenta.

        Siempre vuelve a navegar al listado para obtener datos actualizados.
        """
        session = self.registry.lookup(account_id)
        logger.info(
            f"[API][{session.identifier}] Leyendo agendamientos | Filtro envío: {shipment_id or 'ninguno'}"
        )
        async with session.lock:
            await self._navigator.goto(session, self._target.listing_url)
            return await self._reader.read(session, shipment_id=shipment_id)

    async def fetch_appointment_artifact(self, account_id: int, resource_id: str) -> ArtifactPayload:
        """Descarga el PDF de etiquetas de un agendamiento."""
        session = self.registry.lookup(account_id)
        logger.info(f"[API][{session.identifier}] Descargando PDF del agendamiento {resource_id}")
        async with session.lock:
            await self._navigator.goto(session, self._target.hub_url(resource_id))
            identity = await self._extractor.extract(session, resource_id)

        url = self._target.artifact_url(resource_id)
        content = await self._downloader.fetch_artifact(identity, url)
        logger.info(f"[API][{session.identifier}] PDF del agendamiento {resource_id} obtenido")
        return ArtifactPayload(content=content, filename=f"agendamento_{resource_id}.pdf")


def build_service(settings: ServiceSettings, process: ContextFactory) -> AppointmentService:
    """Arma el servicio y sus componentes a partir de la configuración."""
    target = settings.target
    navigator = NavigationDriver(
        max_attempts=settings.max_attempts,
        retry_delay=settings.retry_delay,
        timeout=settings.navigation_timeout,
    )
    registry = SessionRegistry(
        process=process,
        store=CookieStore(settings.cookies_dir),
        navigator=navigator,
        target=target,
        user_agents=settings.user_agents,
        min_delay=settings.min_delay,
        max_delay=settings.max_delay,
    )
    return AppointmentService(
        registry=registry,
        navigator=navigator,
        reader=AppointmentReader(target, timeout=settings.table_timeout),
        extractor=IdentityExtractor(target),
        downloader=ArtifactDownloader(timeout=settings.request_timeout),
        target=target,
    )


async def start_service(settings: ServiceSettings) -> AppointmentService:
    """
    Carga las cuentas, lanza el navegador compartido y arranca las sesiones.

    Raises
    ------
    ConfigError
        Si el archivo de cuentas falta o está vacío. El navegador no llega
        a lanzarse.
    """
    accounts = load_accounts(settings.accounts_file)

    logger.info(f"Iniciando navegador {'headless' if settings.headless else 'headed'}...")
    process = AutomationProcess(
        headless=settings.headless,
        browser_path=settings.browser_path,
        proxy=settings.proxy,
    )
    await process.start()

    service = build_service(settings, process)
    try:
        await service.registry.initialize(accounts)
    except BaseException:
        await process.stop()
        raise

    logger.info("Todas las cuentas fueron procesadas. Servicio listo.")
    return service
