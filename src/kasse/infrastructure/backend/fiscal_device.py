from __future__ import annotations

from kasse.application.ports.collaborators import FiscalDeviceStatus
from kasse.infrastructure.backend.http_client import BackendError, BackendHttpClient, pick, unwrap


class HttpFiscalDevice:
    def __init__(self, http: BackendHttpClient) -> None:
        self._http = http

    async def status(self) -> FiscalDeviceStatus:
        try:
            payload = await self._http.request("GET", "/tse/status")
        except BackendError as exc:
            return FiscalDeviceStatus(connected=False, message=exc.message)

        raw = unwrap(payload)
        serial_number = pick(raw, "serialNumber", "SerialNumber")
        message = pick(raw, "errorMessage", "ErrorMessage")
        return FiscalDeviceStatus(
            connected=pick(raw, "isConnected", "IsConnected") is True,
            serial_number=str(serial_number) if serial_number else None,
            message=str(message) if message else None,
        )
