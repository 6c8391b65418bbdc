"""Modelos de datos para la API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.appointments import AppointmentRecord


class AppointmentModel(BaseModel):
    """Un agendamiento tal como lo devuelve la API."""

    model_config = ConfigDict(populate_by_name=True)

    envio_id: str = Field(..., alias="envioId", description="Id del envío, con prefijo #")
    unidades: str = Field(..., description="Unidades del envío")
    data_reservada: str = Field(..., alias="dataReservada", description="Fecha reservada")
    custo_aplicado: str = Field(..., alias="custoAplicado", description="Costo aplicado")
    status: str = Field(..., description="Estado del agendamiento")

    @classmethod
    def from_record(cls, record: AppointmentRecord) -> "AppointmentModel":
        return cls(
            envio_id=record.shipment_id,
            unidades=record.units,
            data_reservada=record.reserved_date,
            custo_aplicado=record.applied_cost,
            status=record.status,
        )


class AppointmentsResponse(BaseModel):
    """Modelo de respuesta de la lectura de agendamientos."""

    success: bool = Field(True, description="Indica si la operación fue exitosa")
    account: str = Field(..., description="Identificador de la cuenta")
    agendamentos: List[AppointmentModel] = Field(..., description="Agendamientos con fecha reservada")


class DownloadRequest(BaseModel):
    """Modelo de solicitud de descarga del PDF."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Id de la cuenta")
    numero_agendamento: Union[int, str] = Field(
        ..., alias="numeroAgendamento", description="Número del agendamiento"
    )

    @property
    def resource_id(self) -> str:
        return str(self.numero_agendamento).strip()


class ErrorResponse(BaseModel):
    """Modelo de respuesta de error."""

    success: bool = Field(False, description="Indica que la operación falló")
    error: str = Field(..., description="Mensaje de error")
    error_code: str = Field(..., description="Código de error")
    origin: str = Field("local", description="Origen de la falla: local, network o upstream")
    details: Optional[Dict[str, Any]] = Field(None, description="Detalles adicionales del error")


class HealthResponse(BaseModel):
    """Modelo de respuesta de health check."""

    status: str = Field("healthy", description="Estado del servicio")
    version: str = Field(..., description="Versión del servicio")
    uptime_seconds: float = Field(..., description="Tiempo de funcionamiento en segundos")
    uptime_formatted: str = Field(..., description="Tiempo de funcionamiento formateado")
    sessions: int = Field(..., description="Sesiones vivas")
    failed_accounts: List[int] = Field(default_factory=list, description="Cuentas que fallaron al arrancar")
