import asyncio
import json

import httpx
import pytest

from doctailor.client import TailorClient


def recording_transport(body=None, status_code=200, content=None):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.MockTransport(handler), requests


async def _call(transport, fn):
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        return await fn(TailorClient(http))


def test_process_document_sends_job_details():
    transport, requests = recording_transport({"documentId": 4, "jobId": 1, "processingId": 2})
    result = asyncio.run(_call(
        transport,
        lambda c: c.process_document(4, "Data Engineer", "Acme", "Build batch pipelines.", template_id=3),
    ))

    assert result["processingId"] == 2
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/documents/4/process"
    assert json.loads(requests[0].content) == {
        "title": "Data Engineer", "company": "Acme", "description": "Build batch pipelines.", "templateId": 3,
    }


def test_process_document_omits_template_when_unset():
    transport, requests = recording_transport({})
    asyncio.run(_call(transport, lambda c: c.process_document(4, "T", "C", "Description!")))
    assert "templateId" not in json.loads(requests[0].content)


def test_upload_is_multipart():
    transport, requests = recording_transport({"id": 1})
    asyncio.run(_call(transport, lambda c: c.upload_document("cv.txt", b"Jane", "cv", "text/plain")))

    request = requests[0]
    assert request.url.path == "/api/documents/upload"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="documentType"' in request.content
    assert b"Jane" in request.content


def test_download_returns_bytes():
    transport, requests = recording_transport(content=b"PK\x03\x04")
    data = asyncio.run(_call(transport, lambda c: c.download(9, "docx")))
    assert data == b"PK\x03\x04"
    assert requests[0].url.path == TailorClient.download_url(9, "docx")


def test_error_status_raises():
    transport, _ = recording_transport({"detail": "Document not found"}, status_code=404)
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_call(transport, lambda c: c.get_document(1)))
