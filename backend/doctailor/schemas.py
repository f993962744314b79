from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    CV = "cv"
    COVER = "cover"


class FileType(str, Enum):
    DOCX = "docx"
    PDF = "pdf"
    GDOC = "gdoc"
    TXT = "txt"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {ProcessingStatus.COMPLETED.value, ProcessingStatus.FAILED.value}


class DocumentCreated(BaseModel):
    id: int
    fileName: str
    fileType: str
    documentType: str


class TextDocumentIn(BaseModel):
    content: str = Field(min_length=1)
    fileName: str = Field(min_length=1)
    documentType: DocumentType


class JobIn(BaseModel):
    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    description: str = Field(min_length=10)
    templateId: Optional[int] = None


class ProcessStarted(BaseModel):
    documentId: int
    jobId: int
    processingId: int
    status: str = ProcessingStatus.PROCESSING.value


class ProcessingOut(BaseModel):
    documentId: int
    status: str
    progress: int
    errorMessage: Optional[str] = None


class DocumentOut(BaseModel):
    id: int
    fileName: str
    fileType: str
    documentType: str
    originalContent: Optional[str] = None
    tailoredContent: Optional[str] = None
    originalFilePath: Optional[str] = None
    tailoredFilePath: Optional[str] = None
    jobTitle: Optional[str] = None
    company: Optional[str] = None
    jobDescription: Optional[str] = None
    status: str


class JobOut(BaseModel):
    id: int
    title: str
    company: str
    description: str
    documentId: int
    templateId: Optional[int] = None


class DocumentResult(BaseModel):
    document: DocumentOut
    job: Optional[JobOut] = None


class Differences(BaseModel):
    added: List[str] = []
    removed: List[str] = []
    modified: List[str] = []


class DiffOut(Differences):
    diffHtml: str = ""


class TemplateIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    documentType: DocumentType
    content: str = Field(min_length=1)
    previewImageUrl: Optional[str] = None
    isDefault: bool = False


class TemplateOut(TemplateIn):
    id: int
