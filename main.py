#!/usr/bin/env python3
"""
Entrypoint principal para las herramientas de cookies de ML-Inbound-Scraper.

Comandos ``capture`` y ``check``; el servidor se ejecuta con ``api_server.py``.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Agregar el directorio del paquete al path si es necesario
if __name__ == "__main__":
    project_root = Path(__file__).parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

from ml_inbound_scraper.cli.main import run_cli


async def main() -> int:
    """Función principal."""
    return await run_cli()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
