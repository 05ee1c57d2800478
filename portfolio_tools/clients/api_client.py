"""
Client for the portfolio CRUD API.
"""

from typing import Any, Dict, List, Optional

from .base import JsonApiClient


class PortfolioApiClient(JsonApiClient):
    """Typed-ish wrapper over the ``/api`` routes."""

    service_name = "portfolio-api"

    async def list_portfolio(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/api/portfolio", "Failed to load portfolio")

    async def import_portfolio_csv(self, csv_text: str) -> int:
        body = await self._json(
            "POST",
            "/api/portfolio/import",
            "Failed to import portfolio",
            content=csv_text.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        return int(body["imported"])

    # Links

    async def list_links(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/api/links", "Failed to load links")

    async def create_link(self, title: str, url: str, description: Optional[str] = None,
                          tags: Optional[List[str]] = None, image_url: Optional[str] = None) -> Dict[str, Any]:
        payload = {"title": title, "url": url, "description": description, "tags": tags or [], "image_url": image_url}
        return await self._json("POST", "/api/links", "Failed to create link", json=payload)

    async def update_link(self, link_id: int, **fields: Any) -> Dict[str, Any]:
        return await self._json("PUT", f"/api/links/{link_id}", "Failed to update link", json=fields)

    async def delete_link(self, link_id: int) -> None:
        await self._request("DELETE", f"/api/links/{link_id}", "Failed to delete link")

    # Saved tool items

    async def list_palettes(self) -> List[Dict[str, Any]]:
        body = await self._json("GET", "/api/color-palettes", "Failed to load palettes")
        return body["palettes"]

    async def save_palette(self, file_name: str, image_data_url: str, palette: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = {"fileName": file_name, "imageDataUrl": image_data_url, "palette": palette}
        return await self._json("POST", "/api/color-palettes", "Failed to save palette", json=payload)

    async def delete_palette(self, palette_id: int) -> None:
        await self._request("DELETE", f"/api/color-palettes/{palette_id}", "Failed to delete palette")

    async def list_background_removal_jobs(self) -> List[Dict[str, Any]]:
        body = await self._json("GET", "/api/background-removal/jobs", "Failed to load jobs")
        return body["jobs"]

    async def save_background_removal_job(self, file_name: str, source_image_data_url: str,
                                          result_image_data_url: str) -> Dict[str, Any]:
        payload = {
            "fileName": file_name,
            "sourceImageDataUrl": source_image_data_url,
            "resultImageDataUrl": result_image_data_url,
        }
        return await self._json("POST", "/api/background-removal/jobs", "Failed to save job", json=payload)

    async def delete_background_removal_job(self, job_id: int) -> None:
        await self._request("DELETE", f"/api/background-removal/jobs/{job_id}", "Failed to delete job")

    async def list_nylon_fabric_designs(self) -> List[Dict[str, Any]]:
        body = await self._json("GET", "/api/nylon-fabric-designs", "Failed to load designs")
        return body["designs"]

    async def save_nylon_fabric_design(self, project_name: str, description: str, guide_text: str,
                                       visuals: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = {
            "projectName": project_name,
            "description": description,
            "guideText": guide_text,
            "visuals": visuals,
        }
        return await self._json("POST", "/api/nylon-fabric-designs", "Failed to save design", json=payload)

    async def delete_nylon_fabric_design(self, design_id: int) -> None:
        await self._request("DELETE", f"/api/nylon-fabric-designs/{design_id}", "Failed to delete design")

    async def list_account_items(self) -> List[Dict[str, Any]]:
        body = await self._json("GET", "/api/account/items", "Failed to load account items")
        return body["items"]
