from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..models import Template
from ..schemas import DocumentType, TemplateIn, TemplateOut
from ..storage import Storage
from ..templating import TemplateError, validate_template
from .deps import get_storage

router = APIRouter(prefix="/api/templates", tags=["templates"])


def _template_out(t: Template) -> TemplateOut:
    return TemplateOut(
        id=t.id,
        name=t.name,
        description=t.description or "",
        documentType=t.document_type,
        content=t.content,
        previewImageUrl=t.preview_image_url,
        isDefault=bool(t.is_default),
    )


def _template_fields(body: TemplateIn) -> dict:
    try:
        validate_template(body.content)
    except TemplateError as e:
        raise HTTPException(400, str(e))
    return {
        "name": body.name,
        "description": body.description,
        "document_type": body.documentType.value,
        "content": body.content,
        "preview_image_url": body.previewImageUrl,
        "is_default": body.isDefault,
    }


@router.get("", response_model=List[TemplateOut])
async def list_templates(documentType: Optional[DocumentType] = None, storage: Storage = Depends(get_storage)):
    rows = await storage.list_templates(documentType.value if documentType else None)
    return [_template_out(t) for t in rows]


@router.get("/{template_id}", response_model=TemplateOut)
async def get_template(template_id: int, storage: Storage = Depends(get_storage)):
    t = await storage.get_template(template_id)
    if not t:
        raise HTTPException(404, "Template not found")
    return _template_out(t)


@router.post("", response_model=TemplateOut, status_code=201)
async def create_template(body: TemplateIn, storage: Storage = Depends(get_storage)):
    t = await storage.create_template(**_template_fields(body))
    return _template_out(t)


@router.put("/{template_id}", response_model=TemplateOut)
async def update_template(template_id: int, body: TemplateIn, storage: Storage = Depends(get_storage)):
    t = await storage.update_template(template_id, **_template_fields(body))
    if not t:
        raise HTTPException(404, "Template not found")
    return _template_out(t)


@router.delete("/{template_id}")
async def delete_template(template_id: int, storage: Storage = Depends(get_storage)):
    if not await storage.delete_template(template_id):
        raise HTTPException(404, "Template not found")
    return {"ok": True}
