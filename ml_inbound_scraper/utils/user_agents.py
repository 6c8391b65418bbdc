"""Utilidades para manejo de user agents y client hints."""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence

import latest_user_agents
import user_agents
from zendriver.cdp.emulation import UserAgentBrandVersion, UserAgentMetadata

# Marca "GREASE" que Chrome antepone a sus client hints
GREASE_BRAND = "Not/A)Brand"
GREASE_VERSION = "8"

_PLATFORM_NAMES = {
    "Mac OS X": "macOS",
    "Windows": "Windows",
    "Linux": "Linux",
    "Ubuntu": "Linux",
    "Chrome OS": "Chrome OS",
}


def get_chrome_user_agent() -> str:
    """
    Obtiene un user agent aleatorio y actualizado de Chrome.

    Returns
    -------
    str
        Un user agent de Chrome seleccionado aleatoriamente.

    Raises
    ------
    ValueError
        Si no se encuentran user agents de Chrome disponibles.
    """
    chrome_user_agents: List[str] = [
        user_agent
        for user_agent in latest_user_agents.get_latest_user_agents()
        if is_chrome_user_agent(user_agent)
    ]

    if not chrome_user_agents:
        raise ValueError("No se encontraron user agents de Chrome disponibles")

    return random.choice(chrome_user_agents)


def choose_user_agent(candidates: Optional[Sequence[str]] = None) -> str:
    """Elige un user agent de la lista configurada, o uno actualizado de Chrome."""
    if candidates:
        return random.choice(list(candidates))
    return get_chrome_user_agent()


def is_chrome_user_agent(user_agent: str) -> bool:
    """
    Verifica si un user agent corresponde a Chrome.

    Parameters
    ----------
    user_agent : str
        El user agent a verificar.

    Returns
    -------
    bool
        True si es un user agent de Chrome, False en caso contrario.
    """
    return "Chrome" in user_agent and "Edg" not in user_agent


def chrome_major_version(user_agent: str) -> str:
    """Versión mayor del navegador declarada en el user agent."""
    device = user_agents.parse(user_agent)
    if device.browser.version:
        return str(device.browser.version[0])
    return ""


def client_hint_platform(user_agent: str) -> str:
    """Nombre de plataforma tal como Chrome lo reporta en ``sec-ch-ua-platform``."""
    family = user_agents.parse(user_agent).os.family
    return _PLATFORM_NAMES.get(family, family)


def _brands(version: str) -> List[tuple[str, str]]:
    return [
        (GREASE_BRAND, GREASE_VERSION),
        ("Chromium", version),
        ("Google Chrome", version),
    ]


def build_client_hint_headers(user_agent: str) -> Dict[str, str]:
    """
    Construye los headers ``sec-ch-ua*`` coherentes con el user agent.

    Parameters
    ----------
    user_agent : str
        User agent simulado por la sesión.

    Returns
    -------
    Dict[str, str]
        Headers ``sec-ch-ua``, ``sec-ch-ua-mobile`` y ``sec-ch-ua-platform``.
    """
    device = user_agents.parse(user_agent)
    version = chrome_major_version(user_agent)
    brands = ", ".join(f'"{brand}";v="{brand_version}"' for brand, brand_version in _brands(version))
    return {
        "sec-ch-ua": brands,
        "sec-ch-ua-mobile": "?1" if device.is_mobile else "?0",
        "sec-ch-ua-platform": f'"{client_hint_platform(user_agent)}"',
    }


def build_user_agent_metadata(user_agent: str) -> UserAgentMetadata:
    """Metadatos CDP del user agent, con las mismas marcas que los client hints."""
    device = user_agents.parse(user_agent)
    version = chrome_major_version(user_agent)
    brands = [
        UserAgentBrandVersion(brand=brand, version=brand_version)
        for brand, brand_version in _brands(version)
    ]

    return UserAgentMetadata(
        architecture="x86",
        bitness="64",
        brands=brands,
        full_version_list=brands,
        mobile=device.is_mobile,
        model=device.device.model or "",
        platform=client_hint_platform(user_agent),
        platform_version=device.os.version_string,
        full_version=device.browser.version_string,
        wow64=False,
    )
