"""
Configuración de ML-Inbound-Scraper.

Incluye la descripción del servicio objetivo (URLs, cookies relevantes,
headers estáticos), el archivo de cuentas y los parámetros del servicio.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

# Dominios cuyas cookies se consideran parte de la sesión del servicio
MERCADOLIVRE_DOMAINS: Tuple[str, ...] = (
    ".mercadolivre.com",
    ".mercadolivre.com.br",
    "myaccount.mercadolivre.com.br",
    ".mercadoshops.com.br",
    ".mercadopago.com.br",
    ".google.com",
    ".youtube.com",
    ".rubiconproject.com",
    ".adnxs.com",
    ".creativecdn.com",
    ".bing.com",
    ".pinterest.com",
    ".doubleclick.net",
    "obs.segreencolumn.com",
)

# Orden en que el navegador real envía las cookies conocidas
COOKIE_ORDER_PREFERENCE: Tuple[str, ...] = (
    "p_dsid", "p_edsid", "_d2id", "LAST_SEARCH", "_gcl_au", "_ga", "_cq_duid",
    "_pin_unauth", "_fbp", "_tt_enable_cookie", "_ttp", "ttcsid_C9SJ5SBC77UADFMAH8T0",
    "ttcsid", "cto_bundle", "ftid", "orguserid", "orgnickp", "ssid", "orguseridp",
    "_ga_NDJFKMJ2PD", "cookiesPreferencesLoggedFallback", "cookiesPreferencesNotLogged",
    "cp", "_hjSessionUser_492923", "_uetvid", "_hjSessionUser_720738", "_csrf",
    "_hjSessionUser_651094", "nsa_rotok", "cookiesPreferencesLogged", "hide-cookie-banner",
    "_mldataSessionId", "NSESSIONID_fury_fbm-inbound-frontend", "msl_tx", "nonce_sso",
    "c_ui-navigation", "onboarding_cp", "x-meli-session-id", "hide-cookie-banner_1920442195",
    "_hjSession_720738", "__rtbh.uid", "__rtbh.lid", "_uetsid",
)

DEFAULT_USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
)


@dataclass(frozen=True)
class TargetSite:
    """Descripción del servicio objetivo."""

    home_url: str = "https://www.mercadolivre.com.br/"
    listing_url: str = "https://myaccount.mercadolivre.com.br/shipping/inbounds-v2?status=working"
    hub_url_template: str = "https://myaccount.mercadolivre.com.br/shipping/inbounds/{resource_id}/hub"
    artifact_url_template: str = (
        "https://myaccount.mercadolivre.com.br/api/shipping/inbounds/{resource_id}/labels/details/inbound"
    )
    origin: str = "https://myaccount.mercadolivre.com.br"
    table_selector: str = "#app-root-wrapper > section > div:nth-child(5) > table"
    accept_language: str = "pt-BR,pt;q=0.9"
    timezone: str = "America/Sao_Paulo"
    cookie_priority: Tuple[str, ...] = COOKIE_ORDER_PREFERENCE
    allowed_domains: Tuple[str, ...] = MERCADOLIVRE_DOMAINS

    def hub_url(self, resource_id: str | int) -> str:
        return self.hub_url_template.format(resource_id=resource_id)

    def artifact_url(self, resource_id: str | int) -> str:
        return self.artifact_url_template.format(resource_id=resource_id)


MERCADOLIVRE = TargetSite()


class AccountConfig(BaseModel):
    """Una cuenta del archivo de credenciales."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(..., description="Identificador estable de la cuenta")
    sigla: Optional[str] = Field(None, description="Sigla corta de la cuenta")
    name: Optional[str] = Field(None, description="Nombre de la cuenta")
    cookie_file_name: str = Field(..., alias="cookieFileName", min_length=1)

    @property
    def identifier(self) -> str:
        """Etiqueta usada en logs y respuestas: la sigla o, si falta, el nombre."""
        return self.sigla or self.name or str(self.id)


class AccountsFile(BaseModel):
    """Contenido del archivo ``cred.json``."""

    accounts: List[AccountConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "AccountsFile":
        seen: set[int] = set()
        for account in self.accounts:
            if account.id in seen:
                raise ValueError(f"ID de cuenta duplicado: {account.id}")
            seen.add(account.id)
        return self


def parse_accounts(data: object) -> List[AccountConfig]:
    """
    Valida el contenido del archivo de cuentas y lo ordena por id.

    Raises
    ------
    ConfigError
        Si la estructura es inválida o no hay cuentas.
    """
    try:
        accounts = AccountsFile.model_validate(data).accounts
    except ValidationError as e:
        raise ConfigError(f"Archivo de cuentas inválido: {e}") from e

    if not accounts:
        raise ConfigError("Ninguna cuenta encontrada en el archivo de cuentas")

    return sorted(accounts, key=lambda account: account.id)


def load_accounts(path: str | Path) -> List[AccountConfig]:
    """
    Carga el archivo de cuentas.

    Parameters
    ----------
    path : str | Path
        Ruta de ``cred.json``.

    Returns
    -------
    List[AccountConfig]
        Cuentas ordenadas por id.

    Raises
    ------
    ConfigError
        Si el archivo no existe, no es JSON válido o no tiene cuentas.
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as file:
            data = json.load(file)
    except FileNotFoundError as e:
        raise ConfigError(f"Archivo de cuentas no encontrado: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Archivo de cuentas no es JSON válido: {e}") from e

    accounts = parse_accounts(data)
    logger.info(f"{len(accounts)} cuentas cargadas de {path}")
    return accounts


@dataclass
class ServiceSettings:
    """Parámetros del servicio, normalmente armados desde la línea de comandos."""

    host: str = "0.0.0.0"
    port: int = 38564
    accounts_file: Path = Path("cred.json")
    cookies_dir: Path = Path("cookies")
    headless: bool = True
    browser_path: Optional[str] = None
    proxy: Optional[str] = None
    user_agents: Tuple[str, ...] = DEFAULT_USER_AGENTS
    min_delay: float = 3.0
    max_delay: float = 7.0
    max_attempts: int = 3
    retry_delay: float = 5.0
    navigation_timeout: float = 60.0
    table_timeout: float = 30.0
    request_timeout: float = 60.0
    debug: bool = False
    target: TargetSite = field(default_factory=TargetSite)

    def __post_init__(self) -> None:
        self.accounts_file = Path(self.accounts_file)
        self.cookies_dir = Path(self.cookies_dir)
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ConfigError(
                f"Ventana de espera inválida: [{self.min_delay}, {self.max_delay}]"
            )
        if self.max_attempts < 1:
            raise ConfigError("max_attempts debe ser al menos 1")
