#!/usr/bin/env python3
"""
Script para ejecutar el servidor API de ML-Inbound-Scraper.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Agregar el directorio del paquete al path si es necesario
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ml_inbound_scraper.api.server import InboundAPI
from ml_inbound_scraper.config import ServiceSettings
from ml_inbound_scraper.exceptions import ConfigError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parsea argumentos de línea de comandos para el servidor API."""
    parser = argparse.ArgumentParser(
        description="Servidor API para ML-Inbound-Scraper"
    )

    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host donde ejecutar el servidor (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=38564,
        help="Puerto donde ejecutar el servidor (default: 38564)",
    )

    parser.add_argument(
        "--accounts",
        type=Path,
        default=Path("cred.json"),
        help="Archivo de cuentas (default: cred.json)",
    )

    parser.add_argument(
        "--cookies-dir",
        type=Path,
        default=Path("cookies"),
        help="Directorio de los archivos de cookies (default: cookies)",
    )

    parser.add_argument(
        "--headed",
        action="store_true",
        help="Ejecutar el navegador en modo visible",
    )

    parser.add_argument(
        "--browser-path",
        default=None,
        help="Ejecutable de Chrome a usar",
    )

    parser.add_argument(
        "--proxy",
        default=None,
        help="Proxy a usar para el navegador",
    )

    parser.add_argument(
        "--min-delay",
        type=float,
        default=3.0,
        help="Pausa mínima entre cuentas al arrancar, en segundos (default: 3)",
    )

    parser.add_argument(
        "--max-delay",
        type=float,
        default=7.0,
        help="Pausa máxima entre cuentas al arrancar, en segundos (default: 7)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Habilitar modo debug",
    )

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> ServiceSettings:
    """Convierte los argumentos en la configuración del servicio."""
    return ServiceSettings(
        host=args.host,
        port=args.port,
        accounts_file=args.accounts,
        cookies_dir=args.cookies_dir,
        headless=not args.headed,
        browser_path=args.browser_path,
        proxy=args.proxy,
        min_delay=args.min_delay,
        max_delay=args.max_delay,
        debug=args.debug,
    )


def main() -> None:
    """Función principal del servidor API."""
    args = parse_args()

    # Configurar logging
    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        level=level,
    )
    logging.getLogger("zendriver").setLevel(logging.DEBUG if args.debug else logging.WARNING)

    try:
        settings = build_settings(args)
    except ConfigError as e:
        logging.getLogger(__name__).error(str(e))
        sys.exit(2)

    # Crear y ejecutar servidor
    api = InboundAPI(settings)

    print(f"🚀 Iniciando ML-Inbound API en http://{args.host}:{args.port}")
    print(f"📖 Documentación disponible en http://{args.host}:{args.port}/docs")

    try:
        api.run()
    except KeyboardInterrupt:
        print("\n👋 Servidor detenido")


if __name__ == "__main__":
    main()
