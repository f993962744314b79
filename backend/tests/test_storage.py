import asyncio

import pytest

from doctailor.config import Settings
from doctailor.storage import MemStorage, SqlStorage, build_storage


@pytest.fixture(params=["memory", "database"])
def any_storage(request, sql_storage):
    if request.param == "memory":
        return MemStorage()
    return sql_storage


def test_document_lifecycle(any_storage):
    async def scenario():
        doc = await any_storage.create_document(
            file_name="resume.txt", file_type="txt", document_type="cv", original_content="hello",
        )
        updated = await any_storage.update_document(doc.id, status="processing", job_title="Engineer")
        fetched = await any_storage.get_document(doc.id)
        missing = await any_storage.update_document(doc.id + 100, status="failed")
        return doc, updated, fetched, missing

    doc, updated, fetched, missing = asyncio.run(scenario())
    assert doc.id >= 1
    assert doc.status == "pending"
    assert doc.tailored_content is None
    assert updated.status == "processing"
    assert fetched.job_title == "Engineer"
    assert fetched.original_content == "hello"
    assert missing is None


def test_ids_increase(any_storage):
    async def scenario():
        a = await any_storage.create_document(file_name="a.txt", file_type="txt", document_type="cv")
        b = await any_storage.create_document(file_name="b.txt", file_type="txt", document_type="cv")
        return a.id, b.id

    a, b = asyncio.run(scenario())
    assert b > a


def test_latest_rows_win_for_document(any_storage):
    async def scenario():
        doc = await any_storage.create_document(file_name="a.txt", file_type="txt", document_type="cv")
        await any_storage.create_job(title="First", company="A", description="d" * 10, document_id=doc.id)
        second = await any_storage.create_job(title="Second", company="B", description="d" * 10, document_id=doc.id)
        p1 = await any_storage.create_processing(doc.id)
        p2 = await any_storage.create_processing(doc.id)
        await any_storage.update_processing(p1.id, status="failed", error_message="old")
        job = await any_storage.get_job_by_document(doc.id)
        proc = await any_storage.get_processing_by_document(doc.id)
        none = await any_storage.get_processing_by_document(doc.id + 1)
        return second, p2, job, proc, none

    second, p2, job, proc, none = asyncio.run(scenario())
    assert job.id == second.id and job.title == "Second"
    assert job.template_id is None
    assert proc.id == p2.id
    assert proc.status == "pending" and proc.progress == 0 and proc.error_message is None
    assert none is None


def test_processing_updates(any_storage):
    async def scenario():
        proc = await any_storage.create_processing(1)
        await any_storage.update_processing(proc.id, status="processing", progress=30)
        return await any_storage.get_processing(proc.id)

    proc = asyncio.run(scenario())
    assert proc.status == "processing"
    assert proc.progress == 30


def test_template_crud_and_filter(any_storage):
    async def scenario():
        cv = await any_storage.create_template(name="CV", document_type="cv", content="{{content}}")
        cover = await any_storage.create_template(
            name="Letter", document_type="cover", content="{{content}}", is_default=True,
        )
        cvs = await any_storage.list_templates("cv")
        everything = await any_storage.list_templates()
        renamed = await any_storage.update_template(cv.id, name="CV v2")
        deleted = await any_storage.delete_template(cover.id)
        deleted_again = await any_storage.delete_template(cover.id)
        remaining = await any_storage.list_templates()
        return cv, cvs, everything, renamed, deleted, deleted_again, remaining

    cv, cvs, everything, renamed, deleted, deleted_again, remaining = asyncio.run(scenario())
    assert [t.id for t in cvs] == [cv.id]
    assert len(everything) == 2
    assert renamed.name == "CV v2"
    assert not renamed.is_default
    assert deleted is True
    assert deleted_again is False
    assert [t.name for t in remaining] == ["CV v2"]


def test_build_storage_memory():
    assert isinstance(build_storage(Settings(storage_backend="memory")), MemStorage)


def test_build_storage_database(tmp_path):
    settings = Settings(storage_backend="database", database_url=f"sqlite:///{tmp_path / 'app.db'}")
    storage = build_storage(settings)
    assert isinstance(storage, SqlStorage)
    doc = asyncio.run(storage.create_document(file_name="a.txt", file_type="txt", document_type="cv"))
    assert doc.id == 1


def test_build_storage_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_storage(Settings(storage_backend="redis"))
