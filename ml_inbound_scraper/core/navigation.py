"""Navegación con reintentos y refresco de cookies en segundo plano."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Set, Tuple

from ..exceptions import NavigationFailed, PageLoadError
from ..utils.cookies import CookieJar
from ..utils.storage import CookieStore

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

# Errores de red que justifican reintentar la navegación
TRANSIENT_NETWORK_ERRORS: Tuple[str, ...] = (
    "net::ERR_NETWORK_CHANGED",
    "net::ERR_INTERNET_DISCONNECTED",
    "net::ERR_CONNECTION_RESET",
    "net::ERR_CONNECTION_CLOSED",
    "net::ERR_NETWORK_IO_SUSPENDED",
)


def is_transient_error(error: BaseException) -> bool:
    """Clasifica un error de navegación como transitorio."""
    if isinstance(error, ConnectionResetError):
        return True
    if isinstance(error, PageLoadError):
        return any(code in error.reason for code in TRANSIENT_NETWORK_ERRORS)
    return False


class NavigationDriver:
    """
    Envoltorio de ``goto`` con reintentos ante errores de red transitorios.

    Cada navegación exitosa dispara un refresco de cookies que corre en
    segundo plano; quien necesite el archivo actualizado debe esperar
    ``Session.wait_for_cookie_sync``.

    Parameters
    ----------
    max_attempts : int
        Intentos totales por navegación.
    retry_delay : float
        Pausa fija entre intentos, en segundos.
    timeout : float
        Tiempo máximo de carga por intento.
    sleep : Callable[[float], Awaitable[None]]
        Función de espera, reemplazable en pruebas.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        retry_delay: float = 5.0,
        timeout: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep
        self._refresh_tasks: Set[asyncio.Task] = set()

    async def goto(self, session: "Session", url: str, wait_until: str = "complete") -> None:
        """
        Navega la pestaña de la sesión.

        Raises
        ------
        NavigationFailed
            Si los ``max_attempts`` intentos fallan por errores transitorios.
        Exception
            Cualquier error no transitorio, sin reintentar.
        """
        last_error: BaseException | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                await session.context.navigate(url, wait_until=wait_until, timeout=self.timeout)
            except Exception as e:
                if not is_transient_error(e):
                    raise
                last_error = e
                logger.warning(
                    f"[{session.identifier}] Falla al navegar a {url} "
                    f"(intento {attempt}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts:
                    await self._sleep(self.retry_delay)
                continue

            navigation = session.mark_navigated()
            self._schedule_refresh(session, navigation)
            return

        logger.error(
            f"[{session.identifier}] Falla final al navegar a {url} "
            f"después de {self.max_attempts} intentos"
        )
        raise NavigationFailed(url, self.max_attempts, last_error)

    def _schedule_refresh(self, session: "Session", navigation: int) -> None:
        task = asyncio.create_task(self._refresh_cookies(session, navigation))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh_cookies(self, session: "Session", navigation: int) -> None:
        """
        Relee el jar completo y sobrescribe el archivo de la cuenta.

        Los refrescos de una sesión corren en orden de navegación; uno que
        llega después de un refresco más nuevo no escribe.
        """
        async with session.refresh_lock:
            if navigation < session.synced_navigation:
                logger.debug(
                    f"[{session.identifier}] Refresco de la navegación {navigation} "
                    f"descartado (ya sincronizada la {session.synced_navigation})"
                )
                return

            try:
                records = await session.context.get_cookies()
                await asyncio.to_thread(CookieStore.save, session.cookie_store_path, CookieJar(records))
            except Exception as e:
                logger.error(f"[{session.identifier}] Falla al guardar cookies: {e!r}")
                await session.mark_cookies_synced(navigation, error=e)
                return

            await session.mark_cookies_synced(navigation)
        logger.info(f"[{session.identifier}] Cookies de la sesión actualizadas y guardadas")

    async def drain(self) -> None:
        """Espera los refrescos pendientes."""
        if self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)
