"""Utilidades para almacenamiento de cookies por cuenta."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..exceptions import CookieStoreNotFound, CookieStoreParseError
from .cookies import CookieJar

logger = logging.getLogger(__name__)

COOKIE_FILE_SUFFIX = "-cookies.json"

_WHITESPACE = re.compile(r"\s+")


def normalize_cookie_name(raw_name: str) -> str:
    """Reemplaza secuencias de espacios por guiones, como lo hace la captura."""
    return _WHITESPACE.sub("-", raw_name)


def _as_given(raw_name: str) -> List[str]:
    return [raw_name] if raw_name.endswith(".json") else []


def _normalized_with_suffix(raw_name: str) -> List[str]:
    return [f"{normalize_cookie_name(raw_name)}{COOKIE_FILE_SUFFIX}"]


def _normalized_plain(raw_name: str) -> List[str]:
    return [f"{normalize_cookie_name(raw_name)}.json"]


def _raw_with_suffix(raw_name: str) -> List[str]:
    return [f"{raw_name}{COOKIE_FILE_SUFFIX}"]


def _raw_plain(raw_name: str) -> List[str]:
    return [f"{raw_name}.json"]


# Estrategias de resolución de nombre, en orden de prioridad
FILE_NAME_STRATEGIES: Tuple[Callable[[str], List[str]], ...] = (
    _as_given,
    _normalized_with_suffix,
    _normalized_plain,
    _raw_with_suffix,
    _raw_plain,
)


def candidate_file_names(raw_name: str) -> List[str]:
    """
    Lista determinista de nombres de archivo a probar para una cuenta.

    Parameters
    ----------
    raw_name : str
        Nombre configurado en ``cookieFileName``.

    Returns
    -------
    List[str]
        Nombres únicos, en orden de prueba.
    """
    names: List[str] = []
    for strategy in FILE_NAME_STRATEGIES:
        for name in strategy(raw_name):
            if name not in names:
                names.append(name)
    return names


@dataclass
class CookieStore:
    """
    Almacén de cookies respaldado por archivos JSON en un directorio.

    Parameters
    ----------
    directory : Path
        Directorio donde viven los archivos ``*-cookies.json``.
    """

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def path_for(self, raw_name: str) -> Path:
        """Ruta canónica donde la captura guarda un jar nuevo."""
        return self.directory / f"{normalize_cookie_name(raw_name)}{COOKIE_FILE_SUFFIX}"

    def load(self, raw_name: str) -> Tuple[CookieJar, Path]:
        """
        Carga el jar de la primera ruta candidata que se pueda interpretar.

        Un archivo candidato malformado se registra y se prueba el siguiente.

        Returns
        -------
        Tuple[CookieJar, Path]
            El jar y la ruta de donde se leyó (destino de los refrescos).

        Raises
        ------
        CookieStoreNotFound
            Si ninguna ruta candidata existe.
        CookieStoreParseError
            Si existieron candidatos pero ninguno contenía un arreglo JSON de
            cookies; lleva el error del primero.
        """
        tried: List[Path] = []
        first_error: Optional[CookieStoreParseError] = None
        for name in candidate_file_names(raw_name):
            path = self.directory / name
            tried.append(path)
            if not path.is_file():
                continue
            try:
                jar = read_cookie_file(path)
            except CookieStoreParseError as e:
                logger.warning(f"{e}. Probando el siguiente candidato...")
                first_error = first_error or e
                continue
            logger.info(f"Cookies cargadas de: {path}")
            return jar, path

        if first_error is not None:
            raise first_error
        raise CookieStoreNotFound(raw_name, tried)

    @staticmethod
    def save(path: str | Path, jar: CookieJar) -> None:
        """Sobrescribe por completo el archivo de cookies."""
        write_cookie_file(path, jar)


def read_cookie_file(path: str | Path) -> CookieJar:
    """
    Lee un archivo de cookies.

    Raises
    ------
    CookieStoreParseError
        Si el archivo no es JSON, no es un arreglo o alguna cookie no tiene
        ``name``/``value``/``domain``.
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as file:
            data = json.load(file)
    except json.JSONDecodeError as e:
        raise CookieStoreParseError(path, str(e)) from e

    if not isinstance(data, list):
        raise CookieStoreParseError(path, "se esperaba un arreglo JSON de cookies")

    try:
        return CookieJar.from_json(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CookieStoreParseError(path, f"cookie malformada: {e!r}") from e


def write_cookie_file(path: str | Path, jar: CookieJar) -> None:
    """Escribe el jar como arreglo JSON con indentación de 2 espacios."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as file:
        json.dump(jar.to_json(), file, indent=2, ensure_ascii=False)
    logger.debug(f"{len(jar)} cookies guardadas en {path}")
