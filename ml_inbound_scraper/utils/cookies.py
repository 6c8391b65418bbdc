"""Utilidades para manejo de cookies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from zendriver import cdp
from zendriver.cdp.network import T_JSON_DICT

# Valores de sameSite que la API estricta de CDP acepta
_CDP_SAME_SITE_VALUES = {"Strict", "Lax", "None"}


@dataclass(frozen=True)
class CookieRecord:
    """Una cookie tal como la reporta el canal privilegiado del navegador."""

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float = -1
    http_only: bool = False
    secure: bool = False
    same_site: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        """Clave de unicidad dentro de un jar."""
        return (self.name, self.domain, self.path)

    @classmethod
    def from_json(cls, data: T_JSON_DICT) -> "CookieRecord":
        """
        Construye un registro desde el formato JSON de CDP.

        Claves adicionales (``size``, ``session``, ``priority``...) se ignoran.

        Raises
        ------
        KeyError
            Si faltan ``name``, ``value`` o ``domain``.
        """
        expires = data.get("expires", -1)
        return cls(
            name=str(data["name"]),
            value=str(data["value"]),
            domain=str(data["domain"]),
            path=str(data.get("path") or "/"),
            expires=float(expires) if expires is not None else -1,
            http_only=bool(data.get("httpOnly", False)),
            secure=bool(data.get("secure", False)),
            same_site=data.get("sameSite"),
        )

    def to_json(self) -> T_JSON_DICT:
        """Serializa al formato del archivo de cookies."""
        data: Dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }
        if self.same_site is not None:
            data["sameSite"] = self.same_site
        return data

    @classmethod
    def from_cdp(cls, cookie: cdp.network.Cookie) -> "CookieRecord":
        """Convierte una cookie CDP devuelta por ``Storage.getCookies``."""
        return cls.from_json(cookie.to_json())

    def to_cookie_param(self) -> cdp.network.CookieParam:
        """
        Convierte a ``CookieParam`` para hidratar un contexto.

        ``sameSite`` "Unspecified" (o cualquier valor no reconocido) se omite,
        y ``expires`` se trunca a segundos enteros. Cookies de sesión
        (``expires`` <= 0) no llevan expiración.
        """
        same_site = None
        if self.same_site in _CDP_SAME_SITE_VALUES:
            same_site = cdp.network.CookieSameSite(self.same_site)

        expires = None
        if self.expires and self.expires > 0:
            expires = cdp.network.TimeSinceEpoch(int(self.expires))

        return cdp.network.CookieParam(
            name=self.name,
            value=self.value,
            domain=self.domain,
            path=self.path,
            secure=self.secure,
            http_only=self.http_only,
            same_site=same_site,
            expires=expires,
        )


class CookieJar:
    """
    Conjunto ordenado de cookies, único por ``(name, domain, path)``.

    Agregar una cookie con clave existente la reemplaza en su misma posición.
    """

    def __init__(self, records: Iterable[CookieRecord] = ()) -> None:
        self._records: Dict[Tuple[str, str, str], CookieRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: CookieRecord) -> None:
        self._records[record.key] = record

    @property
    def records(self) -> List[CookieRecord]:
        return list(self._records.values())

    @classmethod
    def from_json(cls, items: Iterable[T_JSON_DICT]) -> "CookieJar":
        return cls(CookieRecord.from_json(item) for item in items)

    def to_json(self) -> List[T_JSON_DICT]:
        return [record.to_json() for record in self._records.values()]

    def __iter__(self) -> Iterator[CookieRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieJar):
            return NotImplemented
        return self.records == other.records

    def __repr__(self) -> str:
        return f"CookieJar({len(self)} cookies)"


def domain_matches(cookie_domain: str, allowed_domain: str) -> bool:
    """
    Indica si el dominio de una cookie cae bajo un sufijo permitido.

    El punto inicial se ignora en ambos lados, de modo que
    ``mercadolivre.com.br`` y ``.mercadolivre.com.br`` son equivalentes y
    ``myaccount.mercadolivre.com.br`` cae bajo ``.mercadolivre.com.br``.
    """
    domain = cookie_domain.lstrip(".").lower()
    suffix = allowed_domain.lstrip(".").lower()
    if not domain or not suffix:
        return False
    return domain == suffix or domain.endswith("." + suffix)


def format_cookie_header(cookies: Iterable[CookieRecord]) -> str:
    """
    Formatea cookies para un header Cookie HTTP.

    Parameters
    ----------
    cookies : Iterable[CookieRecord]
        Cookies a incluir, en el orden de emisión.

    Returns
    -------
    str
        String formateado para header Cookie con formato 'name=value; name2=value2'.
    """
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies)


def order_cookies_for_header(
    cookies: Iterable[CookieRecord],
    *,
    priority: Sequence[str],
    allowed_domains: Sequence[str],
) -> List[CookieRecord]:
    """
    Ordena cookies como las enviaría el navegador al servicio.

    Primero las cookies cuyo nombre está en ``priority``, en ese orden exacto
    (para nombres repetidos gana la primera descubierta). Después el resto,
    en orden de descubrimiento, sólo si su dominio cae bajo algún sufijo de
    ``allowed_domains``. Cada nombre se emite una sola vez.

    Parameters
    ----------
    cookies : Iterable[CookieRecord]
        Jar completo leído por el canal privilegiado.
    priority : Sequence[str]
        Nombres con posición fija al inicio del header.
    allowed_domains : Sequence[str]
        Sufijos de dominio del servicio y sus socios.

    Returns
    -------
    List[CookieRecord]
        Cookies en el orden de emisión.
    """
    discovered = list(cookies)
    first_by_name: Dict[str, CookieRecord] = {}
    for cookie in discovered:
        first_by_name.setdefault(cookie.name, cookie)

    ordered: List[CookieRecord] = []
    emitted: set[str] = set()

    for name in priority:
        cookie = first_by_name.get(name)
        if cookie is not None and name not in emitted:
            ordered.append(cookie)
            emitted.add(name)

    for cookie in discovered:
        if cookie.name in emitted:
            continue
        if any(domain_matches(cookie.domain, allowed) for allowed in allowed_domains):
            ordered.append(cookie)
            emitted.add(cookie.name)

    return ordered


def build_cookie_header(
    cookies: Iterable[CookieRecord],
    *,
    priority: Sequence[str],
    allowed_domains: Sequence[str],
) -> str:
    """Serializa el jar al valor del header Cookie con orden determinista."""
    return format_cookie_header(
        order_cookies_for_header(cookies, priority=priority, allowed_domains=allowed_domains)
    )


def filter_domain_cookies(cookies: Iterable[CookieRecord], domain: str) -> List[CookieRecord]:
    """Filtra cookies que caen bajo un dominio específico."""
    return [cookie for cookie in cookies if domain_matches(cookie.domain, domain)]


def get_cookie_by_name(cookies: Iterable[CookieRecord], name: str) -> Optional[CookieRecord]:
    """Busca una cookie específica por nombre."""
    for cookie in cookies:
        if cookie.name == name:
            return cookie
    return None
