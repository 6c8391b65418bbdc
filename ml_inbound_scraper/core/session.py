"""
Sesiones autenticadas y su registro.

El registro arranca las cuentas una por una dentro del mismo navegador y
mantiene una sesión por cuenta durante toda la vida del proceso.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from ..config import AccountConfig, TargetSite
from ..exceptions import ConfigError, CookieSyncError, SessionNotFound
from ..utils.storage import CookieStore
from ..utils.user_agents import choose_user_agent
from .browser import BrowsingContext
from .navigation import NavigationDriver

logger = logging.getLogger(__name__)


class ContextFactory(Protocol):
    """Lo que el registro necesita del proceso de automatización."""

    async def create_context(self) -> BrowsingContext: ...

    async def stop(self) -> None: ...


@dataclass(eq=False)
class Session:
    """
    Sesión viva de una cuenta.

    ``navigation_count`` cuenta navegaciones completas y ``synced_navigation``
    la última de ellas cuyas cookies ya se intentaron persistir.
    ``lock`` serializa las operaciones sobre la pestaña y ``refresh_lock`` los
    refrescos del archivo de cookies.
    """

    account_id: int
    identifier: str
    context: BrowsingContext
    cookie_store_path: Path
    user_agent: str
    last_cookie_sync_at: Optional[float] = None
    navigation_count: int = 0
    synced_navigation: int = 0
    last_sync_error: Optional[BaseException] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    refresh_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _sync_changed: asyncio.Condition = field(default_factory=asyncio.Condition, init=False, repr=False)

    def mark_navigated(self) -> int:
        """Registra una navegación completa y devuelve su número."""
        self.navigation_count += 1
        return self.navigation_count

    async def mark_cookies_synced(self, navigation: int, error: Optional[BaseException] = None) -> None:
        """Actualiza el marcador del último refresco de cookies."""
        async with self._sync_changed:
            if navigation >= self.synced_navigation:
                self.synced_navigation = navigation
                self.last_sync_error = error
                if error is None:
                    self.last_cookie_sync_at = time.time()
            self._sync_changed.notify_all()

    async def wait_for_cookie_sync(self, timeout: Optional[float] = None) -> float:
        """
        Espera a que el archivo de cookies refleje la última navegación.

        Returns
        -------
        float
            Momento (epoch) del último refresco exitoso.

        Raises
        ------
        CookieSyncError
            Si el refresco de la última navegación falló.
        asyncio.TimeoutError
            Si el refresco no termina dentro de ``timeout``.
        """
        target = self.navigation_count

        async def _wait() -> None:
            async with self._sync_changed:
                await self._sync_changed.wait_for(lambda: self.synced_navigation >= target)

        await asyncio.wait_for(_wait(), timeout=timeout)

        if self.last_sync_error is not None:
            raise CookieSyncError(
                f"[{self.identifier}] Falla al guardar cookies: {self.last_sync_error}"
            )
        if self.last_cookie_sync_at is None:
            raise CookieSyncError(f"[{self.identifier}] Cookies nunca sincronizadas")
        return self.last_cookie_sync_at


class SessionRegistry:
    """
    Tabla de sesiones vivas por id de cuenta.

    Parameters
    ----------
    process : ContextFactory
        Proceso de automatización compartido.
    store : CookieStore
        Almacén de cookies de las cuentas.
    navigator : NavigationDriver
        Driver usado para la navegación inicial de cada cuenta.
    target : TargetSite
        Servicio objetivo.
    user_agents : Sequence[str]
        User agents candidatos; se elige uno por cuenta.
    min_delay, max_delay : float
        Ventana de la pausa aleatoria entre cuentas, en segundos.
    sleep : Callable[[float], Awaitable[None]]
        Función de espera, reemplazable en pruebas.
    """

    def __init__(
        self,
        *,
        process: ContextFactory,
        store: CookieStore,
        navigator: NavigationDriver,
        target: TargetSite,
        user_agents: Sequence[str] = (),
        min_delay: float = 3.0,
        max_delay: float = 7.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._process = process
        self._store = store
        self._navigator = navigator
        self._target = target
        self._user_agents = tuple(user_agents)
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._sleep = sleep
        self._sessions: Dict[int, Session] = {}
        self.failures: Dict[int, str] = {}

    async def initialize(self, accounts: Iterable[AccountConfig]) -> None:
        """
        Arranca las cuentas estrictamente en secuencia.

        Una falla en una cuenta se registra y la cuenta queda fuera del
        registro por el resto de la ejecución; las demás continúan.

        Raises
        ------
        ConfigError
            Si la lista de cuentas está vacía.
        """
        accounts = list(accounts)
        if not accounts:
            raise ConfigError("Ninguna cuenta para inicializar")

        for account in accounts:
            try:
                session = await self._bootstrap(account)
            except Exception as e:
                logger.error(f"[{account.identifier}] Falla al procesar la cuenta: {e!r}")
                self.failures[account.id] = str(e)
            else:
                self._sessions[account.id] = session
                logger.info(f"[{account.identifier}] Cuenta lista para uso")

            delay = random.uniform(self._min_delay, self._max_delay)
            logger.debug(f"Pausa de {delay:.1f}s antes de la siguiente cuenta")
            await self._sleep(delay)

        logger.info(
            f"Cuentas procesadas: {len(self._sessions)} listas, {len(self.failures)} con falla"
        )

    async def _bootstrap(self, account: AccountConfig) -> Session:
        identifier = account.identifier
        logger.info(f"[{identifier}] Creando contexto de navegador aislado...")
        context = await self._process.create_context()
        try:
            user_agent = choose_user_agent(self._user_agents)
            await context.prepare(
                user_agent=user_agent,
                accept_language=self._target.accept_language,
                timezone=self._target.timezone,
            )

            jar, store_path = self._store.load(account.cookie_file_name)
            await context.set_cookies(jar)

            session = Session(
                account_id=account.id,
                identifier=identifier,
                context=context,
                cookie_store_path=store_path,
                user_agent=user_agent,
            )

            logger.info(f"[{identifier}] Navegando a la página inicial...")
            await self._navigator.goto(session, self._target.home_url)
        except BaseException:
            await self._discard(identifier, context)
            raise

        return session

    @staticmethod
    async def _discard(identifier: str, context: BrowsingContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning(f"[{identifier}] No se pudo cerrar el contexto descartado: {e!r}")

    def lookup(self, account_id: int) -> Session:
        """
        Devuelve la sesión de una cuenta.

        Raises
        ------
        SessionNotFound
            Si la cuenta no existe o falló al arrancar.
        """
        try:
            return self._sessions[account_id]
        except KeyError:
            raise SessionNotFound(account_id) from None

    @property
    def sessions(self) -> List[Session]:
        return list(self._sessions.values())

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def close(self) -> None:
        """Espera los refrescos pendientes y detiene el navegador compartido."""
        await self._navigator.drain()
        self._sessions.clear()
        await self._process.stop()
