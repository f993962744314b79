"""
Background orchestration for one tailoring attempt.

A run walks a Processing record through pending -> processing -> completed or
failed, advancing ``progress`` at fixed checkpoints. Every failure after the
record exists ends in ``record_failure``; the HTTP request that launched the
run has already returned, so the Processing record is the only place the
outcome is visible.
"""
import logging
import os
from typing import Optional

from .extract import resolve_content
from .prompts import build_prompt
from .schemas import TERMINAL_STATUSES, ProcessingStatus
from .storage import Storage
from .templating import TemplateError, apply_template

logger = logging.getLogger(__name__)

PROGRESS_STARTED = 10
PROGRESS_CONTENT_READY = 30
PROGRESS_PROMPT_READY = 50
PROGRESS_REWRITTEN = 75
PROGRESS_PERSISTED = 90
PROGRESS_DONE = 100

GENERIC_REWRITE_ERROR = "Failed to generate tailored content"


class PipelineError(Exception):
    """A failure whose message is shown to the user as-is."""


async def record_failure(storage: Storage, document_id: int, processing_id: int, message: str) -> None:
    """Move the run to ``failed``. Errors while recording are logged and swallowed."""
    try:
        await storage.update_processing(
            processing_id,
            status=ProcessingStatus.FAILED.value,
            error_message=message,
        )
        await storage.update_document(document_id, status=ProcessingStatus.FAILED.value)
    except Exception:
        logger.exception(f"Processing {processing_id}: could not record failure {message!r}")


def _write_tailored_file(files_dir: str, document_id: int, processing_id: int, content: str) -> str:
    os.makedirs(files_dir, exist_ok=True)
    path = os.path.join(files_dir, f"tailored_{document_id}_{processing_id}.txt")
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


async def process_document(storage: Storage, rewriter, document_id: int, job_id: int, processing_id: int,
                           files_dir: Optional[str] = None) -> None:
    """Run one tailoring attempt to a terminal state."""
    processing = await storage.get_processing(processing_id)
    if processing is None:
        logger.error(f"Processing {processing_id} not found; aborting run")
        return
    if processing.status in TERMINAL_STATUSES:
        logger.info(f"Processing {processing_id} already {processing.status}; nothing to do")
        return

    def progress(value: int, status: str = ProcessingStatus.PROCESSING.value):
        logger.info(f"Processing {processing_id}: {status} {value}%")
        return storage.update_processing(processing_id, status=status, progress=value)

    try:
        document = await storage.get_document(document_id)
        job = await storage.get_job(job_id)
        if document is None or job is None:
            raise PipelineError("Document or job not found")

        await progress(PROGRESS_STARTED)

        content = resolve_content(document)
        if not content or not content.strip():
            raise PipelineError("Could not extract content from document")
        await progress(PROGRESS_CONTENT_READY)

        prompt = build_prompt(document.document_type, job.title, job.company, job.description, content)
        await progress(PROGRESS_PROMPT_READY)

        try:
            tailored = await rewriter.rewrite(prompt)
        except Exception as e:
            logger.error(f"Processing {processing_id}: rewriter failed: {e}")
            raise PipelineError(str(e) or GENERIC_REWRITE_ERROR) from e
        if not tailored or not tailored.strip():
            raise PipelineError("The generative model returned no content")
        await progress(PROGRESS_REWRITTEN)

        if job.template_id is not None:
            template = await storage.get_template(job.template_id)
            if template is None:
                raise PipelineError(f"Template {job.template_id} not found")
            try:
                tailored = apply_template(template.content, tailored, document.document_type, job)
            except TemplateError as e:
                raise PipelineError(str(e)) from e

        updates = {"tailored_content": tailored}
        if files_dir:
            updates["tailored_file_path"] = _write_tailored_file(files_dir, document_id, processing_id, tailored)
        if not document.original_content:
            # Keep the extracted text so the diff and downloads don't re-parse the file
            updates["original_content"] = content
        await storage.update_document(document_id, **updates)
        await progress(PROGRESS_PERSISTED)

        await storage.update_document(document_id, status=ProcessingStatus.COMPLETED.value)
        await progress(PROGRESS_DONE, ProcessingStatus.COMPLETED.value)
        logger.info(f"Processing {processing_id}: document {document_id} tailored")

    except PipelineError as e:
        logger.error(f"Processing {processing_id}: {e}")
        await record_failure(storage, document_id, processing_id, str(e))
    except Exception as e:
        logger.exception(f"Processing {processing_id}: unexpected error")
        await record_failure(storage, document_id, processing_id, str(e) or "Unknown error")
