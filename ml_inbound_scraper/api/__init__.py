"""Módulo API para ML-Inbound-Scraper."""

from __future__ import annotations

from .server import InboundAPI
from .models import AppointmentsResponse, DownloadRequest, ErrorResponse

__all__ = ["InboundAPI", "AppointmentsResponse", "DownloadRequest", "ErrorResponse"]
