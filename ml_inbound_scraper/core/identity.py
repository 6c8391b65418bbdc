"""
Puente sesión -> request.

Reconstruye, a partir de una sesión viva, los headers que el navegador
enviaría al servicio: cookies en el orden real, token anti-forgery y headers
de huella digital coherentes con el user agent de la sesión.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Tuple

from ..config import TargetSite
from ..exceptions import TokenNotFound
from ..utils.cookies import CookieRecord, build_cookie_header
from ..utils.user_agents import build_client_hint_headers

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

TOKEN_SENTINEL = "token-nao-encontrado"
COOKIE_SENTINEL = "cookies-nao-encontrados"


@dataclass(frozen=True)
class TokenSource:
    """Una fuente del token, evaluada dentro de la página."""

    name: str
    expression: str


# Fuentes del token en orden; gana la primera que devuelve valor
TOKEN_SOURCES: Tuple[TokenSource, ...] = (
    TokenSource(
        "preloaded_state",
        "(() => { try { return window.__PRELOADED_STATE__?.csrfToken || null; } catch (e) { return null; } })()",
    ),
    TokenSource(
        "meta_tag",
        "document.querySelector('meta[name=\"_csrf\"]')?.content || null",
    ),
    TokenSource(
        "hidden_input",
        "document.querySelector('input[name=\"_csrf\"]')?.value || null",
    ),
)


@dataclass(frozen=True)
class RequestIdentity:
    """Headers listos para una llamada HTTP directa. Nunca se reutiliza."""

    cookie_header: str
    anti_forgery_token: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def token_found(self) -> bool:
        return self.anti_forgery_token != TOKEN_SENTINEL


class IdentityExtractor:
    """
    Extrae la identidad de request de una sesión ya navegada.

    No navega ni modifica la sesión, y nunca lanza excepciones: las fallas
    internas se degradan a valores centinela y el error se hace visible en
    la respuesta del servicio remoto.

    Parameters
    ----------
    target : TargetSite
        Servicio objetivo (orden de cookies, dominios permitidos, URLs).
    sources : Tuple[TokenSource, ...]
        Fuentes del token anti-forgery, en orden.
    """

    def __init__(self, target: TargetSite, sources: Tuple[TokenSource, ...] = TOKEN_SOURCES) -> None:
        self._target = target
        self._sources = sources

    async def discover_token(self, session: "Session") -> str:
        """
        Prueba las fuentes del token en orden.

        Raises
        ------
        TokenNotFound
            Si ninguna fuente devolvió un valor.
        """
        for source in self._sources:
            try:
                value = await session.context.evaluate(source.expression)
            except Exception as e:
                logger.debug(f"[{session.identifier}] Fuente de token {source.name} falló: {e!r}")
                continue
            if isinstance(value, str) and value:
                logger.info(f"[{session.identifier}] Token x-csrf-token encontrado ({source.name})")
                return value

        raise TokenNotFound(source.name for source in self._sources)

    def serialize_cookies(self, cookies: List[CookieRecord]) -> str:
        """Valor del header Cookie, determinista para un jar dado."""
        return build_cookie_header(
            cookies,
            priority=self._target.cookie_priority,
            allowed_domains=self._target.allowed_domains,
        )

    def build_headers(
        self,
        *,
        cookie_header: str,
        token: str,
        resource_id: str,
        user_agent: str,
    ) -> Dict[str, str]:
        """Arma los headers en el orden en que los envía el navegador."""
        headers = {
            "accept": "application/json, text/plain, */*",
            "accept-language": self._target.accept_language,
            "cookie": cookie_header,
            "origin": self._target.origin,
            "referer": self._target.hub_url(resource_id),
        }
        headers.update(build_client_hint_headers(user_agent))
        headers.update({
            "sec-fetch-dest": "empty",
            "sec-fetch-mode": "cors",
            "sec-fetch-site": "same-origin",
            "user-agent": user_agent,
            "x-csrf-token": token,
        })
        return headers

    async def extract(self, session: "Session", resource_id: str) -> RequestIdentity:
        """
        Calcula la identidad de request a partir del estado actual de la sesión.

        Parameters
        ----------
        session : Session
            Sesión ya navegada a la página del recurso.
        resource_id : str
            Id del recurso, usado para el referer.

        Returns
        -------
        RequestIdentity
            Identidad recién calculada.
        """
        try:
            token = await self.discover_token(session)
        except TokenNotFound as e:
            logger.warning(f"[{session.identifier}] {e}. La petición puede fallar.")
            token = TOKEN_SENTINEL

        try:
            cookies = await session.context.get_cookies()
            cookie_header = self.serialize_cookies(cookies)
        except Exception as e:
            logger.warning(f"[{session.identifier}] Falla al leer cookies del contexto: {e!r}")
            cookie_header = ""

        if not cookie_header:
            logger.warning(f"[{session.identifier}] Ninguna cookie generada para el header")
            cookie_header = COOKIE_SENTINEL

        return RequestIdentity(
            cookie_header=cookie_header,
            anti_forgery_token=token,
            headers=self.build_headers(
                cookie_header=cookie_header,
                token=token,
                resource_id=resource_id,
                user_agent=session.user_agent,
            ),
        )
