"""
ML-Inbound-Scraper: orquestador de sesiones autenticadas para Mercado Livre.

Este paquete mantiene una sesión de navegador por cuenta, lee la tabla de
agendamientos de envíos y descarga sus etiquetas en PDF reutilizando la
identidad de la sesión en llamadas HTTP directas.
"""

from __future__ import annotations

from .config import (
    AccountConfig,
    ServiceSettings,
    TargetSite,
    MERCADOLIVRE,
    load_accounts,
)
from .exceptions import (
    InboundScraperError,
    ConfigError,
    SessionNotFound,
    NavigationFailed,
    ExtractionError,
    UpstreamRejected,
    UpstreamUnavailable,
)
from .core import (
    AutomationProcess,
    SessionRegistry,
    NavigationDriver,
    AppointmentReader,
    AppointmentRecord,
    IdentityExtractor,
    RequestIdentity,
    ArtifactDownloader,
    AppointmentService,
    start_service,
)
from .api.server import InboundAPI
from .utils.cookies import CookieRecord, CookieJar, build_cookie_header
from .utils.storage import CookieStore

__version__ = "1.0.0"
__author__ = "ML-Inbound-Scraper Team"

__all__ = [
    # Configuración
    "AccountConfig",
    "ServiceSettings",
    "TargetSite",
    "MERCADOLIVRE",
    "load_accounts",

    # Errores
    "InboundScraperError",
    "ConfigError",
    "SessionNotFound",
    "NavigationFailed",
    "ExtractionError",
    "UpstreamRejected",
    "UpstreamUnavailable",

    # Core
    "AutomationProcess",
    "SessionRegistry",
    "NavigationDriver",
    "AppointmentReader",
    "AppointmentRecord",
    "IdentityExtractor",
    "RequestIdentity",
    "ArtifactDownloader",
    "AppointmentService",
    "start_service",

    # API
    "InboundAPI",

    # Utilidades
    "CookieRecord",
    "CookieJar",
    "build_cookie_header",
    "CookieStore",
]
