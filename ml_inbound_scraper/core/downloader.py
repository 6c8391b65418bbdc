"""Ejecución de la llamada HTTP directa con una identidad sintetizada."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..exceptions import UpstreamRejected, UpstreamUnavailable
from .identity import RequestIdentity

logger = logging.getLogger(__name__)


class ArtifactDownloader:
    """
    Hace un POST al servicio con los headers de una sesión.

    Parameters
    ----------
    timeout : float
        Timeout total de la petición, en segundos.
    client : Optional[httpx.AsyncClient]
        Cliente a reutilizar; si no se indica se crea uno por llamada.
    """

    def __init__(self, *, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout
        self._client = client

    async def fetch_artifact(self, identity: RequestIdentity, url: str) -> bytes:
        """
        Ejecuta la petición y devuelve el cuerpo crudo.

        Raises
        ------
        UpstreamRejected
            Si el servicio respondió con estado no exitoso; lleva estado y cuerpo.
        UpstreamUnavailable
            Si la petición no llegó a completarse.
        """
        if self._client is not None:
            return await self._post(self._client, identity, url)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, identity, url)

    async def _post(self, client: httpx.AsyncClient, identity: RequestIdentity, url: str) -> bytes:
        try:
            response = await client.post(url, json={}, headers=identity.headers)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            logger.warning(f"El servicio respondió {response.status_code} para {url}")
            raise UpstreamRejected(response.status_code, response.content, url)

        logger.debug(f"{len(response.content)} bytes recibidos de {url}")
        return response.content
