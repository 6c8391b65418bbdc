"""Módulo principal del CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional

from ml_inbound_scraper.config import MERCADOLIVRE, TargetSite
from ml_inbound_scraper.core.browser import AutomationProcess, BrowsingContext
from ml_inbound_scraper.core.navigation import NavigationDriver
from ml_inbound_scraper.core.session import Session
from ml_inbound_scraper.exceptions import InboundScraperError
from ml_inbound_scraper.utils.cookies import (
    CookieJar,
    CookieRecord,
    filter_domain_cookies,
    get_cookie_by_name,
)
from ml_inbound_scraper.utils.storage import CookieStore
from ml_inbound_scraper.utils.user_agents import choose_user_agent

logger = logging.getLogger(__name__)

# Cookie que indica una sesión iniciada en el servicio
SESSION_COOKIE = "ssid"
SERVICE_DOMAIN = "mercadolivre.com.br"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parsea argumentos de línea de comandos."""
    parser = argparse.ArgumentParser(
        description="Herramientas para capturar y verificar cookies de cuentas de Mercado Livre"
    )
    parser.add_argument(
        "--cookies-dir",
        default="cookies",
        help="Directorio de los archivos de cookies (default: cookies)",
        type=Path,
    )
    parser.add_argument(
        "--browser-path",
        default=None,
        help="Ejecutable de Chrome a usar",
        type=str,
    )
    parser.add_argument(
        "-p", "--proxy",
        default=None,
        help="Proxy a usar para el navegador",
        type=str,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Habilitar logs de depuración",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    capture = subparsers.add_parser(
        "capture",
        help="Abre el navegador para iniciar sesión y guarda las cookies resultantes",
    )
    capture.add_argument(
        "-n", "--name",
        default=None,
        help="Nombre del archivo de cookies; si falta se pregunta al terminar",
        type=str,
    )

    check = subparsers.add_parser(
        "check",
        help="Abre el servicio con un archivo de cookies y las mantiene actualizadas",
    )
    check.add_argument(
        "cookie_file",
        metavar="COOKIE_FILE",
        help="Nombre del archivo de cookies (con o sin extensión)",
        type=str,
    )
    check.add_argument(
        "-k", "--keep-open",
        default=60.0,
        help="Segundos que el navegador queda abierto (default: 60)",
        type=float,
    )
    check.add_argument(
        "--headless",
        action="store_true",
        help="Ejecutar el navegador en modo headless",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configura el sistema de logging."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        level=level,
    )

    # Silenciar logs de zendriver a menos que sea debug
    logging.getLogger("zendriver").setLevel(logging.WARNING if not debug else logging.DEBUG)


def summarize_cookies(cookies: List[CookieRecord]) -> None:
    """Informa cuántas cookies son del servicio y si hay sesión iniciada."""
    service_cookies = filter_domain_cookies(cookies, SERVICE_DOMAIN)
    logger.info(f"{len(cookies)} cookies en total, {len(service_cookies)} de {SERVICE_DOMAIN}")

    if get_cookie_by_name(service_cookies, SESSION_COOKIE) is None:
        logger.warning(f"Cookie {SESSION_COOKIE} ausente: la sesión probablemente no está iniciada")
    else:
        logger.info(f"Cookie {SESSION_COOKIE} presente: sesión iniciada")


async def prompt(message: str) -> str:
    """Lee una línea de la terminal sin bloquear el loop."""
    return await asyncio.to_thread(input, message)


async def open_context(process: AutomationProcess, target: TargetSite) -> tuple[BrowsingContext, str]:
    context = await process.create_context()
    user_agent = choose_user_agent()
    await context.prepare(
        user_agent=user_agent,
        accept_language=target.accept_language,
        timezone=target.timezone,
    )
    return context, user_agent


async def capture_cookies(
    *,
    store: CookieStore,
    name: Optional[str],
    browser_path: Optional[str] = None,
    proxy: Optional[str] = None,
    target: TargetSite = MERCADOLIVRE,
) -> Path:
    """
    Captura interactiva de cookies.

    Abre el servicio en un navegador visible, espera ENTER mientras el
    usuario inicia sesión y guarda el jar completo en
    ``<nombre>-cookies.json``.

    Returns
    -------
    Path
        Archivo escrito.
    """
    async with AutomationProcess(headless=False, browser_path=browser_path, proxy=proxy) as process:
        context, _ = await open_context(process, target)

        logger.info("Navegando a Mercado Livre...")
        await context.navigate(target.home_url)

        await prompt("Mercado Livre abierto. Inicie sesión y presione ENTER para guardar las cookies...")
        while not name:
            name = (await prompt("Nombre para el archivo de cookies (ej: MiSesionML): ")).strip()

        cookies = await context.get_cookies()
        path = store.path_for(name)
        store.save(path, CookieJar(cookies))

    summarize_cookies(cookies)
    logger.info(f"Cookies guardadas en {path}")
    return path


async def check_cookies(
    *,
    store: CookieStore,
    cookie_file: str,
    keep_open: float,
    headless: bool = False,
    browser_path: Optional[str] = None,
    proxy: Optional[str] = None,
    target: TargetSite = MERCADOLIVRE,
) -> None:
    """
    Verifica un archivo de cookies navegando con él.

    Cada navegación sobrescribe el archivo con el jar actualizado; al final
    se informa si la sesión sigue iniciada.
    """
    jar, path = store.load(cookie_file)
    logger.info(f"{len(jar)} cookies cargadas de {path}")

    navigator = NavigationDriver()
    async with AutomationProcess(headless=headless, browser_path=browser_path, proxy=proxy) as process:
        context, user_agent = await open_context(process, target)
        await context.set_cookies(jar)

        session = Session(
            account_id=0,
            identifier=path.stem,
            context=context,
            cookie_store_path=path,
            user_agent=user_agent,
        )

        for url in (target.home_url, target.listing_url):
            logger.info(f"[{session.identifier}] Navegando a {url}")
            await navigator.goto(session, url)

        logger.info(f"[{session.identifier}] Navegador abierto por {keep_open:.0f}s...")
        await asyncio.sleep(keep_open)

        # Captura lo que el usuario haya hecho mientras el navegador estuvo abierto
        await navigator.drain()
        cookies = await context.get_cookies()
        store.save(path, CookieJar(cookies))

    summarize_cookies(cookies)
    logger.info(f"[{session.identifier}] Cookies guardadas en {path}")


async def run_cli(argv: Optional[List[str]] = None) -> int:
    """Función principal del CLI."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    store = CookieStore(args.cookies_dir)
    start_time = time.time()

    try:
        if args.command == "capture":
            await capture_cookies(
                store=store,
                name=args.name,
                browser_path=args.browser_path,
                proxy=args.proxy,
            )
        else:
            await check_cookies(
                store=store,
                cookie_file=args.cookie_file,
                keep_open=args.keep_open,
                headless=args.headless,
                browser_path=args.browser_path,
                proxy=args.proxy,
            )
    except InboundScraperError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Procesamiento completado en {time.time() - start_time:.2f} segundos")
    return 0


def main() -> None:
    """Entrypoint de consola."""
    raise SystemExit(asyncio.run(run_cli()))
