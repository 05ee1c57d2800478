"""
Client for the paystub analyzer backend.
"""

from typing import Any, Dict, List, Union

from .base import JsonApiClient


class PaystubApiClient(JsonApiClient):
    service_name = "paystub-api"

    async def analyze_paystub(self, pdf: bytes, filename: str = "paystub.pdf") -> Dict[str, Any]:
        """Upload a paystub PDF and return the extracted paycheck."""
        files = {"paystub": (filename, pdf, "application/pdf")}
        return await self._json("POST", "/analyze", "Failed to analyze paystub", files=files)

    async def fetch_paychecks(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/paychecks", "Failed to fetch paychecks")

    async def update_reported_hours(self, paycheck_id: Union[int, str], user_reported_hours: Dict[str, List[Any]]) -> None:
        await self._request(
            "PUT",
            f"/paychecks/{paycheck_id}",
            "Failed to update reported hours.",
            json={"userReportedHours": user_reported_hours},
        )

    async def clear_all_data(self) -> None:
        await self._request("DELETE", "/paychecks", "Failed to clear data")
