"""Async HTTP client for the document tailoring API."""
from typing import Any, Dict, Optional

import httpx


class TailorClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        response = await self.http.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def upload_document(self, filename: str, data: bytes, document_type: str,
                              content_type: str = "application/octet-stream") -> Dict[str, Any]:
        files = {"file": (filename, data, content_type)}
        return await self._json("POST", "/api/documents/upload", files=files, data={"documentType": document_type})

    async def create_from_text(self, content: str, file_name: str, document_type: str) -> Dict[str, Any]:
        body = {"content": content, "fileName": file_name, "documentType": document_type}
        return await self._json("POST", "/api/documents/create-from-text", json=body)

    async def process_document(self, document_id: int, title: str, company: str, description: str,
                               template_id: Optional[int] = None) -> Dict[str, Any]:
        body = {"title": title, "company": company, "description": description}
        if template_id is not None:
            body["templateId"] = template_id
        return await self._json("POST", f"/api/documents/{document_id}/process", json=body)

    async def get_processing_status(self, document_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/api/documents/{document_id}/status")

    async def get_document(self, document_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/api/documents/{document_id}")

    async def get_differences(self, document_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/api/documents/{document_id}/diff")

    @staticmethod
    def download_url(document_id: int, fmt: str) -> str:
        return f"/api/documents/{document_id}/download/{fmt}"

    async def download(self, document_id: int, fmt: str) -> bytes:
        response = await self.http.get(self.download_url(document_id, fmt))
        response.raise_for_status()
        return response.content
