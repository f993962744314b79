import io
import logging
import os
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, StreamingResponse

from ..config import Settings, get_settings
from ..diffing import highlight_differences, make_diff_html
from ..exporters import EXPORT_FORMATS, render_document
from ..extract import extract_file_text
from ..models import Document, Job
from ..pipeline import process_document, record_failure
from ..runners.run_manager import RunManager
from ..schemas import (
    DiffOut, DocumentCreated, DocumentOut, DocumentResult, DocumentType, FileType,
    JobIn, JobOut, ProcessingOut, ProcessStarted, TextDocumentIn,
)
from ..storage import Storage
from .deps import get_rewriter, get_run_manager, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])

UPLOAD_TYPES = {t.value for t in FileType}
MEDIA_TYPES = {
    "txt": "text/plain",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def validate_pdf_bytes(data: bytes) -> bool:
    """PDF header signature plus an EOF marker near the end."""
    return data[:5] == b"%PDF-" and b"%%EOF" in data[-1024:]


def _ascii_filename(name: str, fallback: str) -> str:
    # Header values must be latin-1; drop anything else rather than fail the response
    cleaned = name.encode("ascii", "ignore").decode().replace("\"", "").strip()
    return cleaned or fallback


def _document_out(d: Document) -> DocumentOut:
    return DocumentOut(
        id=d.id, fileName=d.file_name, fileType=d.file_type, documentType=d.document_type,
        originalContent=d.original_content, tailoredContent=d.tailored_content,
        originalFilePath=d.original_file_path, tailoredFilePath=d.tailored_file_path,
        jobTitle=d.job_title, company=d.company, jobDescription=d.job_description,
        status=d.status,
    )


def _job_out(j: Job) -> JobOut:
    return JobOut(id=j.id, title=j.title, company=j.company, description=j.description,
                  documentId=j.document_id, templateId=j.template_id)


async def _get_document_or_404(storage: Storage, document_id: int) -> Document:
    document = await storage.get_document(document_id)
    if not document:
        raise HTTPException(404, "Document not found")
    return document


@router.post("/upload", response_model=DocumentCreated)
async def upload_document(file: UploadFile = File(...), documentType: str = Form(...),
                          storage: Storage = Depends(get_storage),
                          settings: Settings = Depends(get_settings)):
    """Store an uploaded CV or cover letter."""
    if not file.filename:
        raise HTTPException(400, "No file uploaded")
    if documentType not in {t.value for t in DocumentType}:
        raise HTTPException(400, "documentType must be 'cv' or 'cover'")

    file_name = os.path.basename(file.filename)
    ext = os.path.splitext(file_name)[1]
    file_type = ext[1:].lower()
    if file_type not in UPLOAD_TYPES:
        raise HTTPException(400, "Unsupported file type. Please upload DOCX, PDF, TXT or Google Doc")

    contents = await file.read()
    if len(contents) > settings.max_upload_bytes:
        raise HTTPException(400, f"File too large. Maximum size is {settings.max_upload_mb} MB")
    if file_type == "pdf" and not validate_pdf_bytes(contents):
        raise HTTPException(400, "File is not a valid PDF")

    os.makedirs(settings.files_dir, exist_ok=True)
    file_path = os.path.join(settings.files_dir, f"upload_{uuid.uuid4().hex}{ext.lower()}")
    try:
        with open(file_path, "wb") as f:
            f.write(contents)
    except OSError as e:
        logger.error(f"Upload write failed for {file_name}: {e}")
        raise HTTPException(500, "Failed to upload document")

    original_content = None
    if file_type == "txt":
        original_content = contents.decode("utf-8", errors="ignore")

    document = await storage.create_document(
        file_name=file_name,
        file_type=file_type,
        document_type=documentType,
        original_file_path=file_path,
        original_content=original_content,
    )
    logger.info(f"Stored upload {file_name} as document {document.id}")
    return DocumentCreated(id=document.id, fileName=document.file_name,
                           fileType=document.file_type, documentType=document.document_type)


@router.post("/create-from-text", response_model=DocumentCreated)
async def create_from_text(body: TextDocumentIn, storage: Storage = Depends(get_storage)):
    """Create a document from pasted text."""
    document = await storage.create_document(
        file_name=body.fileName,
        file_type=FileType.TXT.value,
        document_type=body.documentType.value,
        original_content=body.content,
    )
    return DocumentCreated(id=document.id, fileName=document.file_name,
                           fileType=document.file_type, documentType=document.document_type)


@router.post("/{document_id}/process", response_model=ProcessStarted)
async def start_processing(document_id: int, body: JobIn,
                           storage: Storage = Depends(get_storage),
                           runs: RunManager = Depends(get_run_manager),
                           rewriter=Depends(get_rewriter),
                           settings: Settings = Depends(get_settings)):
    """Record job details and launch a detached tailoring run."""
    await _get_document_or_404(storage, document_id)
    if body.templateId is not None and not await storage.get_template(body.templateId):
        raise HTTPException(404, "Template not found")

    try:
        job = await storage.create_job(
            title=body.title,
            company=body.company,
            description=body.description,
            document_id=document_id,
            template_id=body.templateId,
        )
        processing = await storage.create_processing(document_id)
        await storage.update_document(
            document_id,
            job_title=body.title,
            company=body.company,
            job_description=body.description,
            status="processing",
        )
    except Exception as e:
        logger.error(f"Failed to create job for document {document_id}: {e}")
        raise HTTPException(500, "Failed to process document")

    try:
        runs.launch(
            processing.id,
            process_document(storage, rewriter, document_id, job.id, processing.id, files_dir=settings.files_dir),
        )
    except Exception as e:
        logger.error(f"Failed to launch processing {processing.id}: {e}")
        await record_failure(storage, document_id, processing.id, f"Failed to start processing: {e}")
        raise HTTPException(500, "Failed to start document processing")

    return ProcessStarted(documentId=document_id, jobId=job.id, processingId=processing.id)


@router.get("/{document_id}/status", response_model=ProcessingOut)
async def get_status(document_id: int, storage: Storage = Depends(get_storage)):
    processing = await storage.get_processing_by_document(document_id)
    if not processing:
        raise HTTPException(404, "Processing not found")
    return ProcessingOut(documentId=document_id, status=processing.status,
                         progress=processing.progress, errorMessage=processing.error_message)


@router.get("/{document_id}", response_model=DocumentResult)
async def get_document(document_id: int, storage: Storage = Depends(get_storage)):
    document = await _get_document_or_404(storage, document_id)
    job = await storage.get_job_by_document(document_id)
    return DocumentResult(document=_document_out(document), job=_job_out(job) if job else None)


@router.get("/{document_id}/diff", response_model=DiffOut)
async def get_differences(document_id: int, storage: Storage = Depends(get_storage)):
    """Coarse added/removed/modified lines between original and tailored text."""
    document = await _get_document_or_404(storage, document_id)
    if not document.original_content or not document.tailored_content:
        return DiffOut()
    diff = highlight_differences(document.original_content, document.tailored_content)
    return DiffOut(**diff.model_dump(), diffHtml=make_diff_html(diff))


@router.get("/{document_id}/download/{fmt}")
async def download_document(document_id: int, fmt: str, storage: Storage = Depends(get_storage)):
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(400, "Unsupported download format")
    document = await _get_document_or_404(storage, document_id)

    content = document.tailored_content or document.original_content
    if not content and document.original_file_path:
        content = extract_file_text(document.original_file_path, document.file_type, document.file_name)
    if not content:
        raise HTTPException(404, "No content available for download")

    stem = _ascii_filename(os.path.splitext(document.file_name)[0], f"document_{document_id}")
    try:
        body, media_type = render_document(content, fmt, title=stem)
    except Exception as e:
        logger.error(f"Failed to render document {document_id} as {fmt}: {e}")
        raise HTTPException(500, "Failed to download document")

    headers = {"Content-Disposition": f'attachment; filename="{stem}.{fmt}"'}
    return StreamingResponse(io.BytesIO(body), media_type=media_type, headers=headers)


@router.get("/{document_id}/view")
async def view_original(document_id: int, storage: Storage = Depends(get_storage)):
    """Serve the original upload inline (PDF preview)."""
    document = await _get_document_or_404(storage, document_id)
    path = document.original_file_path
    if not path or not os.path.exists(path):
        raise HTTPException(404, "Original file not found")
    return FileResponse(
        path,
        media_type=MEDIA_TYPES.get(document.file_type, "application/octet-stream"),
        headers={"Content-Disposition": f'inline; filename="{_ascii_filename(document.file_name, os.path.basename(path))}"'},
    )
