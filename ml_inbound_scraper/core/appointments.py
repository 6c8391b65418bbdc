"""Lectura de la tabla de agendamientos de envíos."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from ..config import TargetSite
from ..exceptions import ExtractionError

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

MISSING = "N/A"
DATE_PLACEHOLDER = "-"

# Texto de encabezado que identifica cada columna semántica
COLUMN_HEADERS: Dict[str, str] = {
    "shipment_id": "Envio",
    "units": "Unidades",
    "reserved_date": "Data reservada",
    "applied_cost": "Custo aplicado",
    "status": "Status",
}

_READ_TABLE_JS = """
(() => {{
    const table = document.querySelector({selector});
    if (!table) return null;
    const rows = Array.from(table.querySelectorAll('tr'));
    if (rows.length === 0) return {{ headers: [], rows: [] }};
    const headers = Array.from(rows[0].querySelectorAll('th')).map(th => th.innerText.trim());
    const body = rows.slice(1).map(
        row => Array.from(row.querySelectorAll('td')).map(td => td.innerText.trim())
    );
    return {{ headers: headers, rows: body }};
}})()
"""


@dataclass(frozen=True)
class AppointmentRecord:
    """Un agendamiento con fecha reservada."""

    shipment_id: str
    units: str
    reserved_date: str
    applied_cost: str
    status: str


def shipment_label(shipment_id: str | int) -> str:
    """Texto con que la tabla muestra un id de envío (``#123``)."""
    return f"#{shipment_id}"


def _header_index(headers: Sequence[str], needle: str) -> int:
    for index, header in enumerate(headers):
        if needle in header:
            return index
    return -1


def _validate_table(table: Any) -> tuple[List[str], List[List[str]]]:
    if not isinstance(table, dict):
        raise ExtractionError(f"Estructura de tabla inesperada: {type(table).__name__}")

    headers = table.get("headers")
    rows = table.get("rows")
    if not isinstance(headers, list) or not headers:
        raise ExtractionError("La tabla no tiene fila de encabezados")
    if not all(isinstance(header, str) for header in headers):
        raise ExtractionError("Encabezados de la tabla con tipo inválido")
    if not isinstance(rows, list):
        raise ExtractionError("Filas de la tabla con estructura inválida")

    for position, row in enumerate(rows, start=1):
        if not isinstance(row, list) or not all(isinstance(cell, str) for cell in row):
            raise ExtractionError(f"Fila {position} de la tabla con estructura inválida")

    return headers, rows


def parse_appointment_table(table: Any, shipment_id: Optional[str] = None) -> List[AppointmentRecord]:
    """
    Convierte el contenido crudo de la tabla en agendamientos.

    Las columnas se ubican por substring del encabezado, sin depender del
    orden. Sólo quedan filas con fecha reservada presente y distinta de
    ``-``.

    Parameters
    ----------
    table : Any
        ``{"headers": [...], "rows": [[...], ...]}`` leído de la página.
    shipment_id : Optional[str]
        Si se indica, sólo filas cuyo envío sea exactamente ``#<shipment_id>``.

    Returns
    -------
    List[AppointmentRecord]
        Agendamientos en el orden de la tabla.

    Raises
    ------
    ExtractionError
        Si la estructura de la tabla no es la esperada.
    """
    headers, rows = _validate_table(table)
    columns = {field: _header_index(headers, text) for field, text in COLUMN_HEADERS.items()}
    if columns["reserved_date"] == -1:
        logger.warning("Columna de fecha reservada ausente; ninguna fila califica")

    def cell(row: List[str], field: str) -> Optional[str]:
        index = columns[field]
        if index == -1 or index >= len(row):
            return None
        return row[index]

    wanted = shipment_label(shipment_id) if shipment_id is not None else None
    records: List[AppointmentRecord] = []
    for row in rows:
        reserved_date = cell(row, "reserved_date")
        if not reserved_date or reserved_date == DATE_PLACEHOLDER:
            continue
        if wanted is not None and cell(row, "shipment_id") != wanted:
            continue
        records.append(
            AppointmentRecord(
                shipment_id=cell(row, "shipment_id") or MISSING,
                units=cell(row, "units") or MISSING,
                reserved_date=reserved_date,
                applied_cost=cell(row, "applied_cost") or MISSING,
                status=cell(row, "status") or MISSING,
            )
        )
    return records


def filter_by_shipment(records: Sequence[AppointmentRecord], shipment_id: str) -> List[AppointmentRecord]:
    """Filtra agendamientos ya extraídos por id exacto de envío."""
    wanted = shipment_label(shipment_id)
    return [record for record in records if record.shipment_id == wanted]


class AppointmentReader:
    """
    Lee la tabla de agendamientos de una sesión ya navegada.

    Parameters
    ----------
    target : TargetSite
        Servicio objetivo; define el localizador de la tabla.
    timeout : float
        Espera máxima por la tabla, en segundos.
    """

    def __init__(self, target: TargetSite, timeout: float = 30.0) -> None:
        self._selector = target.table_selector
        self._timeout = timeout
        self._script = _READ_TABLE_JS.format(selector=json.dumps(self._selector))

    async def read(self, session: "Session", shipment_id: Optional[str] = None) -> List[AppointmentRecord]:
        """
        Extrae los agendamientos de la página actual.

        Una tabla ausente no es error: el servicio puede no tener pendientes.

        Raises
        ------
        ExtractionError
            Si la tabla existe pero no se pudo interpretar.
        """
        if not await session.context.wait_for_selector(self._selector, timeout=self._timeout):
            logger.warning(
                f"[{session.identifier}] Tabla de agendamientos no encontrada "
                "(probablemente vacía). Devolviendo lista vacía."
            )
            return []

        try:
            table = await session.context.evaluate(self._script)
        except Exception as e:
            raise ExtractionError(f"[{session.identifier}] Falla al leer la tabla: {e}") from e

        if table is None:
            logger.warning(f"[{session.identifier}] La tabla desapareció antes de leerla")
            return []

        records = parse_appointment_table(table, shipment_id=shipment_id)
        logger.info(f"[{session.identifier}] {len(records)} agendamientos encontrados")
        return records
