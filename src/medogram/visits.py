"""
Visits REST API — medical visit records on the primary backend.
"""

from typing import Any, Union

from medogram.transport.http import HttpClient


class VisitsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def list(self) -> Any:
        """List the current user's visits."""
        return await self._http.get("/api/visits/")

    async def create(self, visit: dict[str, Any]) -> dict[str, Any]:
        return await self._http.post("/api/visits/", visit)

    async def get(self, visit_id: Union[int, str]) -> dict[str, Any]:
        return await self._http.get(f"/api/visits/{visit_id}/")
