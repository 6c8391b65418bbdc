"""Módulo core con la orquestación de sesiones."""

from __future__ import annotations

from .browser import AutomationProcess, BrowsingContext
from .session import Session, SessionRegistry
from .navigation import NavigationDriver, is_transient_error
from .appointments import AppointmentReader, AppointmentRecord, parse_appointment_table
from .identity import IdentityExtractor, RequestIdentity, TOKEN_SENTINEL
from .downloader import ArtifactDownloader
from .service import AppointmentService, ArtifactPayload, build_service, start_service

__all__ = [
    # Navegador y sesiones
    "AutomationProcess",
    "BrowsingContext",
    "Session",
    "SessionRegistry",
    "NavigationDriver",
    "is_transient_error",

    # Lectura
    "AppointmentReader",
    "AppointmentRecord",
    "parse_appointment_table",

    # Peticiones directas
    "IdentityExtractor",
    "RequestIdentity",
    "TOKEN_SENTINEL",
    "ArtifactDownloader",

    # Servicio
    "AppointmentService",
    "ArtifactPayload",
    "build_service",
    "start_service",
]
