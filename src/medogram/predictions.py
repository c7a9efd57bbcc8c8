"""
Predictions REST API — opaque model endpoints on the local backend.
"""

from typing import Any

from medogram.transport.http import HttpClient, Origin


class PredictionsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def diabetes(self, health_data: dict[str, Any]) -> dict[str, Any]:
        return await self._http.post("/api/predictions/diabetes/", health_data, origin=Origin.LOCAL)
