from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"
    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)  # docx|pdf|gdoc|txt
    document_type = Column(String, nullable=False)  # cv|cover
    original_content = Column(Text, nullable=True)
    tailored_content = Column(Text, nullable=True)
    original_file_path = Column(String, nullable=True)
    tailored_file_path = Column(String, nullable=True)
    # Filled in when job details are submitted
    job_title = Column(String, nullable=True)
    company = Column(String, nullable=True)
    job_description = Column(Text, nullable=True)
    status = Column(String, default="pending")  # pending|processing|completed|failed
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Job(Base):
    __tablename__ = "jobs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    company = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    document_id = Column(Integer, index=True, nullable=False)
    template_id = Column(Integer, nullable=True)


class Processing(Base):
    __tablename__ = "processing"
    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, index=True, nullable=False)
    progress = Column(Integer, default=0)  # 0-100
    status = Column(String, default="pending")  # pending|processing|completed|failed
    error_message = Column(Text, nullable=True)


class Template(Base):
    __tablename__ = "templates"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    document_type = Column(String, index=True, nullable=False)  # cv|cover
    content = Column(Text, nullable=False)
    preview_image_url = Column(String, nullable=True)
    is_default = Column(Boolean, default=False)
