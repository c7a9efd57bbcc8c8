"""
Payments REST API.
"""

from typing import Any, Union

from medogram.transport.http import HttpClient


class PaymentsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def create(self, payment: dict[str, Any]) -> dict[str, Any]:
        return await self._http.post("/api/payments/", payment)

    async def verify(self, payment_id: Union[int, str], verification: dict[str, Any]) -> dict[str, Any]:
        """Confirm a payment after the gateway redirect."""
        return await self._http.post(f"/api/payments/{payment_id}/verify/", verification)
