"""Módulo de utilidades para ML-Inbound-Scraper."""

from __future__ import annotations

from .user_agents import get_chrome_user_agent, build_client_hint_headers
from .cookies import CookieRecord, CookieJar, format_cookie_header, build_cookie_header
from .storage import CookieStore, candidate_file_names

__all__ = [
    "get_chrome_user_agent",
    "build_client_hint_headers",
    "CookieRecord",
    "CookieJar",
    "format_cookie_header",
    "build_cookie_header",
    "CookieStore",
    "candidate_file_names",
]
