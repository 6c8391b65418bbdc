"""
Proceso de automatización compartido y sus contextos aislados.

Un ``AutomationProcess`` es dueño de un único navegador Zendriver; cada
``BrowsingContext`` es un contexto de navegador independiente (cookies y
storage propios) dueño exclusivo de una pestaña.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Optional, Tuple

import zendriver
from selenium_authenticated_proxy import SeleniumAuthenticatedProxy
from zendriver import cdp
from zendriver.core.connection import ProtocolException

from ..exceptions import PageLoadError
from ..utils.cookies import CookieRecord
from ..utils.user_agents import build_user_agent_metadata

logger = logging.getLogger(__name__)

# Argumentos de lanzamiento para simular un navegador de escritorio común
LAUNCH_ARGUMENTS: Tuple[str, ...] = (
    "--disable-infobars",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
)

_READY_STATES = ("loading", "interactive", "complete")


class BrowsingContext:
    """
    Contexto de navegador aislado con su pestaña.

    Parameters
    ----------
    process : AutomationProcess
        Proceso dueño del contexto.
    context_id : cdp.browser.BrowserContextID
        Identificador CDP del contexto.
    tab : zendriver.Tab
        Única pestaña del contexto.
    """

    def __init__(
        self,
        process: "AutomationProcess",
        context_id: cdp.browser.BrowserContextID,
        tab: zendriver.Tab,
    ) -> None:
        self._process = process
        self.context_id = context_id
        self.tab = tab
        self.closed = False

    async def prepare(
        self,
        *,
        user_agent: str,
        accept_language: str,
        timezone: str,
        viewport: Tuple[int, int] = (1920, 1080),
    ) -> None:
        """Aplica user agent, zona horaria y viewport a la pestaña."""
        await self.tab.send(
            cdp.network.set_user_agent_override(
                user_agent,
                accept_language=accept_language,
                user_agent_metadata=build_user_agent_metadata(user_agent),
            )
        )
        await self.tab.send(cdp.emulation.set_timezone_override(timezone_id=timezone))
        width, height = viewport
        await self.tab.send(
            cdp.emulation.set_device_metrics_override(
                width=width, height=height, device_scale_factor=1, mobile=False
            )
        )

    async def set_cookies(self, records: Iterable[CookieRecord]) -> None:
        """Hidrata el contexto con cookies persistidas."""
        params = [record.to_cookie_param() for record in records]
        if not params:
            return
        await self.tab.send(
            cdp.storage.set_cookies(cookies=params, browser_context_id=self.context_id)
        )

    async def get_cookies(self) -> List[CookieRecord]:
        """
        Lee el jar completo del contexto por el canal CDP.

        Incluye cookies http-only, invisibles para ``document.cookie``.
        """
        cookies = await self.tab.send(
            cdp.storage.get_cookies(browser_context_id=self.context_id)
        )
        return [CookieRecord.from_cdp(cookie) for cookie in cookies]

    async def navigate(self, url: str, *, wait_until: str = "complete", timeout: float = 60.0) -> None:
        """
        Navega la pestaña y espera el estado de carga pedido.

        Raises
        ------
        PageLoadError
            Si el navegador reporta un error de red o la carga no termina a tiempo.
        """
        try:
            _frame_id, _loader_id, error_text, *_ = await self.tab.send(cdp.page.navigate(url))
        except ProtocolException as e:
            raise PageLoadError(url, str(e)) from e

        if error_text:
            raise PageLoadError(url, error_text)

        await self._wait_for_ready_state(url, wait_until, timeout)

    async def _wait_for_ready_state(self, url: str, until: str, timeout: float) -> None:
        target = _READY_STATES.index(until)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            state = await self.evaluate("document.readyState")
            if state in _READY_STATES and _READY_STATES.index(state) >= target:
                return
            if loop.time() >= deadline:
                raise PageLoadError(url, f"timeout esperando readyState={until} (actual: {state})")
            await asyncio.sleep(0.25)

    async def evaluate(self, expression: str) -> Any:
        """Evalúa una expresión JavaScript y devuelve su valor."""
        return await self.tab.evaluate(expression, return_by_value=True)

    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        """Espera a que exista un elemento; ``False`` si no aparece a tiempo."""
        try:
            await self.tab.select(selector, timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def close(self) -> None:
        """Cierra la pestaña y descarta el contexto."""
        if self.closed:
            return
        self.closed = True
        await self.tab.close()
        await self._process.dispose_context(self.context_id)


class AutomationProcess:
    """
    Navegador compartido por todas las cuentas.

    Parameters
    ----------
    headless : bool
        Ejecutar en modo headless.
    browser_path : Optional[str]
        Ejecutable de Chrome; Zendriver lo busca si no se indica.
    proxy : Optional[str]
        Proxy a utilizar.
    lang : str
        Idioma del navegador.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        browser_path: Optional[str] = None,
        proxy: Optional[str] = None,
        lang: str = "pt-BR",
    ) -> None:
        self._config = self._build_config(
            headless=headless,
            browser_path=browser_path,
            proxy=proxy,
            lang=lang,
        )
        self.driver: Optional[zendriver.Browser] = None
        self.contexts: List[BrowsingContext] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    def _build_config(
        self,
        *,
        headless: bool,
        browser_path: Optional[str],
        proxy: Optional[str],
        lang: str,
    ) -> zendriver.Config:
        """Construye la configuración del navegador."""
        config = zendriver.Config(
            headless=headless,
            browser_executable_path=browser_path,
            lang=lang,
        )
        for argument in LAUNCH_ARGUMENTS:
            config.add_argument(argument)

        # Configurar proxy si se proporciona
        if proxy:
            auth_proxy = SeleniumAuthenticatedProxy(proxy)
            auth_proxy.enrich_chrome_options(config)

        return config

    async def __aenter__(self) -> "AutomationProcess":
        await self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Inicializar el navegador."""
        if self.driver is None:
            self.driver = zendriver.Browser(self._config)
            await self.driver.start()
            self._logger.debug("Navegador iniciado")

    async def stop(self) -> None:
        """Detener el navegador. Invalida todos los contextos."""
        if self.driver is not None:
            for context in self.contexts:
                context.closed = True
            self.contexts.clear()
            await self.driver.stop()
            self.driver = None
            self._logger.debug("Navegador detenido")

    def _require_driver(self) -> zendriver.Browser:
        if self.driver is None:
            raise RuntimeError("El navegador no está iniciado")
        return self.driver

    async def create_context(self) -> BrowsingContext:
        """Crea un contexto aislado con una pestaña en blanco."""
        driver = self._require_driver()
        context_id = await driver.connection.send(
            cdp.target.create_browser_context(dispose_on_detach=True)
        )
        target_id = await driver.connection.send(
            cdp.target.create_target("about:blank", browser_context_id=context_id)
        )
        tab = await self._find_tab(driver, target_id)
        context = BrowsingContext(self, context_id, tab)
        self.contexts.append(context)
        self._logger.debug(f"Contexto {context_id} creado")
        return context

    async def _find_tab(
        self, driver: zendriver.Browser, target_id: cdp.target.TargetID, timeout: float = 10.0
    ) -> zendriver.Tab:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            await driver.update_targets()
            for tab in driver.tabs:
                if tab.target is not None and tab.target.target_id == target_id:
                    return tab
            await asyncio.sleep(0.1)
        raise RuntimeError(f"Pestaña {target_id} no apareció en {timeout}s")

    async def dispose_context(self, context_id: cdp.browser.BrowserContextID) -> None:
        """Descarta un contexto; su pestaña queda inválida."""
        self.contexts = [context for context in self.contexts if context.context_id != context_id]
        if self.driver is None:
            return
        await self.driver.connection.send(cdp.target.dispose_browser_context(context_id))
