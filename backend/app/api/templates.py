"""Document template endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.template import (
    RenderedDocumentRead,
    TemplatePreviewRequest,
    TemplateRead,
    TemplateType,
    TemplateUpdate,
)
from backend.app.services import templates as template_service

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/", response_model=List[TemplateRead])
async def list_templates(db: Session = Depends(get_db)):
    return template_service.list_templates(db)


@router.post("/preview", response_model=RenderedDocumentRead)
async def preview_template(preview_in: TemplatePreviewRequest):
    document = template_service.preview_template(preview_in.html_content, preview_in.subject)
    return RenderedDocumentRead(subject=document.subject, html=document.html)


@router.get("/{template_type}", response_model=TemplateRead)
async def get_template(template_type: TemplateType, db: Session = Depends(get_db)):
    return template_service.resolve_template(db, template_type)


@router.put("/{template_type}", response_model=TemplateRead)
async def update_template(template_type: TemplateType, template_in: TemplateUpdate, db: Session = Depends(get_db)):
    return template_service.update_template(db, template_type, template_in)


@router.post("/{template_type}/reset", response_model=TemplateRead)
async def reset_template(template_type: TemplateType, db: Session = Depends(get_db)):
    return template_service.reset_template_to_default(db, template_type)
