"""Persistence for documents, jobs, processing records and templates.

Two interchangeable backends implement :class:`Storage`: an in-process
``MemStorage`` and a SQLAlchemy-backed ``SqlStorage``. One of them is chosen
at start-up by :func:`build_storage` and used for the life of the process.
"""
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy import select

from .config import Settings
from .db import Base, make_engine, make_session_factory
from .models import Document, Job, Processing, Template, utcnow

logger = logging.getLogger(__name__)


class Storage(ABC):
    # Documents
    @abstractmethod
    async def get_document(self, document_id: int) -> Optional[Document]: ...

    @abstractmethod
    async def create_document(self, **fields) -> Document: ...

    @abstractmethod
    async def update_document(self, document_id: int, **updates) -> Optional[Document]: ...

    # Jobs
    @abstractmethod
    async def get_job(self, job_id: int) -> Optional[Job]: ...

    @abstractmethod
    async def get_job_by_document(self, document_id: int) -> Optional[Job]: ...

    @abstractmethod
    async def create_job(self, **fields) -> Job: ...

    # Processing
    @abstractmethod
    async def get_processing(self, processing_id: int) -> Optional[Processing]: ...

    @abstractmethod
    async def get_processing_by_document(self, document_id: int) -> Optional[Processing]: ...

    @abstractmethod
    async def create_processing(self, document_id: int) -> Processing: ...

    @abstractmethod
    async def update_processing(self, processing_id: int, **updates) -> Optional[Processing]: ...

    # Templates
    @abstractmethod
    async def list_templates(self, document_type: Optional[str] = None) -> List[Template]: ...

    @abstractmethod
    async def get_template(self, template_id: int) -> Optional[Template]: ...

    @abstractmethod
    async def create_template(self, **fields) -> Template: ...

    @abstractmethod
    async def update_template(self, template_id: int, **updates) -> Optional[Template]: ...

    @abstractmethod
    async def delete_template(self, template_id: int) -> bool: ...


class MemStorage(Storage):
    """Process-wide maps with monotonically increasing ids; nothing survives a restart."""

    def __init__(self):
        self._documents: Dict[int, Document] = {}
        self._jobs: Dict[int, Job] = {}
        self._processing: Dict[int, Processing] = {}
        self._templates: Dict[int, Template] = {}
        self._document_ids = itertools.count(1)
        self._job_ids = itertools.count(1)
        self._processing_ids = itertools.count(1)
        self._template_ids = itertools.count(1)

    @staticmethod
    def _apply(row, updates: dict):
        for k, v in updates.items():
            setattr(row, k, v)
        return row

    async def get_document(self, document_id):
        return self._documents.get(document_id)

    async def create_document(self, **fields):
        fields.setdefault("original_content", None)
        fields.setdefault("original_file_path", None)
        doc = Document(
            id=next(self._document_ids),
            status="pending",
            tailored_content=None,
            tailored_file_path=None,
            job_title=None,
            company=None,
            job_description=None,
            created_at=utcnow(),
            **fields,
        )
        self._documents[doc.id] = doc
        return doc

    async def update_document(self, document_id, **updates):
        doc = self._documents.get(document_id)
        if doc is None:
            return None
        return self._apply(doc, updates)

    async def get_job(self, job_id):
        return self._jobs.get(job_id)

    async def get_job_by_document(self, document_id):
        matches = [j for j in self._jobs.values() if j.document_id == document_id]
        return max(matches, key=lambda j: j.id) if matches else None

    async def create_job(self, **fields):
        fields.setdefault("template_id", None)
        job = Job(id=next(self._job_ids), **fields)
        self._jobs[job.id] = job
        return job

    async def get_processing(self, processing_id):
        return self._processing.get(processing_id)

    async def get_processing_by_document(self, document_id):
        matches = [p for p in self._processing.values() if p.document_id == document_id]
        return max(matches, key=lambda p: p.id) if matches else None

    async def create_processing(self, document_id):
        proc = Processing(
            id=next(self._processing_ids),
            document_id=document_id,
            progress=0,
            status="pending",
            error_message=None,
        )
        self._processing[proc.id] = proc
        return proc

    async def update_processing(self, processing_id, **updates):
        proc = self._processing.get(processing_id)
        if proc is None:
            return None
        return self._apply(proc, updates)

    async def list_templates(self, document_type=None):
        rows = sorted(self._templates.values(), key=lambda t: t.id)
        if document_type:
            rows = [t for t in rows if t.document_type == document_type]
        return rows

    async def get_template(self, template_id):
        return self._templates.get(template_id)

    async def create_template(self, **fields):
        fields.setdefault("description", "")
        fields.setdefault("preview_image_url", None)
        fields.setdefault("is_default", False)
        tpl = Template(id=next(self._template_ids), **fields)
        self._templates[tpl.id] = tpl
        return tpl

    async def update_template(self, template_id, **updates):
        tpl = self._templates.get(template_id)
        if tpl is None:
            return None
        return self._apply(tpl, updates)

    async def delete_template(self, template_id):
        return self._templates.pop(template_id, None) is not None


class SqlStorage(Storage):
    """Relational backend; each call runs in its own short-lived session.

    Sessions are synchronous, so a query blocks the event loop while it runs.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _get(self, model, row_id):
        with self._session_factory() as db:
            return db.get(model, row_id)

    def _create(self, row):
        with self._session_factory() as db:
            db.add(row)
            db.commit()
            return row

    def _update(self, model, row_id, updates: dict):
        with self._session_factory() as db:
            row = db.get(model, row_id)
            if row is None:
                return None
            for k, v in updates.items():
                setattr(row, k, v)
            db.commit()
            return row

    def _latest_for_document(self, model, document_id):
        with self._session_factory() as db:
            stmt = select(model).where(model.document_id == document_id).order_by(model.id.desc()).limit(1)
            return db.execute(stmt).scalars().first()

    async def get_document(self, document_id):
        return self._get(Document, document_id)

    async def create_document(self, **fields):
        return self._create(Document(status="pending", **fields))

    async def update_document(self, document_id, **updates):
        return self._update(Document, document_id, updates)

    async def get_job(self, job_id):
        return self._get(Job, job_id)

    async def get_job_by_document(self, document_id):
        return self._latest_for_document(Job, document_id)

    async def create_job(self, **fields):
        return self._create(Job(**fields))

    async def get_processing(self, processing_id):
        return self._get(Processing, processing_id)

    async def get_processing_by_document(self, document_id):
        return self._latest_for_document(Processing, document_id)

    async def create_processing(self, document_id):
        return self._create(Processing(document_id=document_id, progress=0, status="pending"))

    async def update_processing(self, processing_id, **updates):
        return self._update(Processing, processing_id, updates)

    async def list_templates(self, document_type=None):
        with self._session_factory() as db:
            stmt = select(Template).order_by(Template.id)
            if document_type:
                stmt = stmt.where(Template.document_type == document_type)
            return list(db.execute(stmt).scalars().all())

    async def get_template(self, template_id):
        return self._get(Template, template_id)

    async def create_template(self, **fields):
        return self._create(Template(**fields))

    async def update_template(self, template_id, **updates):
        return self._update(Template, template_id, updates)

    async def delete_template(self, template_id):
        with self._session_factory() as db:
            row = db.get(Template, template_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True


def build_storage(settings: Settings) -> Storage:
    if settings.storage_backend == "database":
        engine = make_engine(settings.database_url)
        Base.metadata.create_all(bind=engine)
        logger.info(f"Using database storage at {engine.url.render_as_string(hide_password=True)}")
        return SqlStorage(make_session_factory(engine))
    if settings.storage_backend != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r} (expected memory or database)")
    logger.info("Using in-memory storage")
    return MemStorage()
