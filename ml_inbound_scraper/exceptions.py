"""
Excepciones del orquestador de sesiones.

Cada error lleva un ``origin`` para que quien llama pueda distinguir entre
fallas locales, de red y rechazos del servicio remoto.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class InboundScraperError(Exception):
    """Error base de ML-Inbound-Scraper."""

    origin: str = "local"


class ConfigError(InboundScraperError):
    """Configuración de cuentas ausente o inválida. Aborta el arranque."""


class CookieStoreNotFound(InboundScraperError):
    """Ningún archivo candidato de cookies existe."""

    def __init__(self, raw_name: str, tried: Iterable[Path]) -> None:
        self.raw_name = raw_name
        self.tried = list(tried)
        super().__init__(
            f'Archivo de cookies para "{raw_name}" no encontrado. '
            f"Probados: {', '.join(str(path) for path in self.tried)}"
        )


class CookieStoreParseError(InboundScraperError):
    """El archivo de cookies existe pero no es un arreglo JSON válido."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Archivo de cookies inválido {path}: {reason}")


class SessionNotFound(InboundScraperError):
    """No hay sesión viva para la cuenta pedida."""

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(
            f"Cuenta con ID {account_id} no encontrada o no inicializada"
        )


class NavigationError(InboundScraperError):
    """Error base de navegación."""

    origin = "network"


class PageLoadError(NavigationError):
    """La página no cargó; ``reason`` trae el texto de error del navegador."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Falla al navegar a {url}: {reason}")


class NavigationFailed(NavigationError):
    """Se agotaron los intentos de navegación por errores transitorios."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Falla al navegar a {url} después de {attempts} intentos: {last_error}"
        )


class ExtractionError(InboundScraperError):
    """La tabla existe pero su estructura no se pudo interpretar."""


class TokenNotFound(InboundScraperError):
    """Ninguna fuente del token anti-forgery devolvió valor."""

    def __init__(self, tried: Iterable[str]) -> None:
        self.tried = list(tried)
        super().__init__(f"Token x-csrf-token no encontrado (fuentes: {', '.join(self.tried)})")


class CookieSyncError(InboundScraperError):
    """El último refresco de cookies en disco falló."""


class UpstreamRejected(InboundScraperError):
    """El servicio remoto respondió con un estado no exitoso."""

    origin = "upstream"

    def __init__(self, status_code: int, body: bytes, url: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"El servicio remoto respondió {status_code} para {url}")

    @property
    def body_text(self) -> str:
        """Cuerpo de la respuesta decodificado sin perder bytes inválidos."""
        return self.body.decode("utf-8", errors="replace")


class UpstreamUnavailable(InboundScraperError):
    """No se pudo contactar el servicio remoto."""

    origin = "network"

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Error de red contactando {url}: {reason}")
