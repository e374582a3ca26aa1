"""
Admissions API
Applications with server-assigned numbers, an append-only status
history and supporting document uploads.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.admission import Admission, AdmissionDocument, AdmissionDocumentType, ApplicationStatus
from app.models.organization import Student
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, require_permission
from app.modules.auth.policy import enforce
from app.schemas.admission import AdmissionCreate, AdmissionUpdate, AdmissionResponse, AdmissionDocumentResponse
from app.schemas.common import ok, dump
from app.services.admission_service import next_application_number, record_status
from app.services.profile_service import ProfileService
from app.services.storage_service import storage_service
from app.utils.pagination import PaginationParams, pagination_params, paginate, paginated_response

router = APIRouter()


async def get_admission(db: AsyncSession, admission_id: str) -> Admission:
    result = await db.execute(
        select(Admission)
        .options(selectinload(Admission.documents), selectinload(Admission.status_history))
        .where(Admission.id == admission_id)
        .execution_options(populate_existing=True)
    )
    admission = result.scalar_one_or_none()
    if not admission:
        raise NotFoundError("Admission", admission_id)
    return admission


def _get_document(admission: Admission, document_id: str) -> AdmissionDocument:
    for document in admission.documents:
        if str(document.id) == document_id:
            return document
    raise NotFoundError("Document", document_id)


@router.get("")
async def list_admissions(
    program_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None),
    application_status: Optional[ApplicationStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Search by application number, name or email"),
    paging: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(require_permission("admission", "list")),
    db: AsyncSession = Depends(get_db)
):
    query = (
        select(Admission)
        .options(selectinload(Admission.documents), selectinload(Admission.status_history))
        .order_by(Admission.created_at.desc())
    )
    if program_id:
        query = query.where(Admission.program_id == program_id)
    if department_id:
        query = query.where(Admission.department_id == department_id)
    if academic_year:
        query = query.where(Admission.academic_year == academic_year)
    if application_status:
        query = query.where(Admission.application_status == application_status)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Admission.application_number.ilike(pattern),
            Admission.applicant_name.ilike(pattern),
            Admission.applicant_email.ilike(pattern),
        ))

    page = await paginate(db, query, paging.page, paging.page_size)
    return paginated_response(page, lambda admission: dump(AdmissionResponse, admission))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_admission(
    data: AdmissionCreate,
    current_user: User = Depends(require_permission("admission", "create")),
    db: AsyncSession = Depends(get_db)
):
    await ProfileService(db).check_references(data.department_id, data.program_id)

    fields = data.model_dump(exclude={"application_status"})
    admission = Admission(
        **fields,
        application_number=await next_application_number(db, data.program_id),
        user_id=current_user.id,
    )
    record_status(admission, data.application_status, updated_by_id=current_user.id,
                  remarks="Application created")
    db.add(admission)
    await db.commit()

    logger.log_domain_event(
        "Admission", "created", str(admission.id),
        application_number=admission.application_number,
    )
    return ok(dump(AdmissionResponse, await get_admission(db, admission.id)))


@router.get("/{admission_id}")
async def read_admission(
    admission_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    admission = await get_admission(db, admission_id)
    enforce(current_user, "read", "admission", admission)
    return ok(dump(AdmissionResponse, admission))


@router.put("/{admission_id}")
async def update_admission(
    admission_id: str,
    data: AdmissionUpdate,
    current_user: User = Depends(require_permission("admission", "update")),
    db: AsyncSession = Depends(get_db)
):
    """A status change is appended to the history with the optional remarks"""
    admission = await get_admission(db, admission_id)
    changes = data.model_dump(exclude_unset=True, exclude={"application_status", "remarks"})

    if changes.get("student_id") and not await db.get(Student, changes["student_id"]):
        raise NotFoundError("Student", changes["student_id"])

    for field, value in changes.items():
        setattr(admission, field, value)
    if data.application_status is not None:
        record_status(admission, data.application_status, updated_by_id=current_user.id,
                      remarks=data.remarks)

    await db.commit()
    return ok(dump(AdmissionResponse, await get_admission(db, admission_id)))


@router.delete("/{admission_id}")
async def delete_admission(
    admission_id: str,
    current_user: User = Depends(require_permission("admission", "delete")),
    db: AsyncSession = Depends(get_db)
):
    admission = await get_admission(db, admission_id)
    file_urls = [document.file_url for document in admission.documents]

    await db.delete(admission)
    await db.commit()
    for url in file_urls:
        await storage_service.delete(url)

    logger.log_domain_event("Admission", "deleted", admission_id)
    return ok({})


# ==================== Documents ====================

@router.post("/{admission_id}/documents", status_code=status.HTTP_201_CREATED)
async def upload_admission_document(
    admission_id: str,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    document_type: AdmissionDocumentType = Form(AdmissionDocumentType.OTHER),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    admission = await get_admission(db, admission_id)
    enforce(current_user, "upload_document", "admission", admission)

    url = await storage_service.save_upload(file, "admissions")
    document = AdmissionDocument(
        admission_id=admission.id,
        name=name or file.filename or "document",
        document_type=document_type,
        file_url=url,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)

    logger.log_domain_event("AdmissionDocument", "uploaded", str(document.id), admission_id=admission_id)
    return ok(dump(AdmissionDocumentResponse, document))


@router.put("/{admission_id}/documents/{document_id}/verify")
async def verify_admission_document(
    admission_id: str,
    document_id: str,
    current_user: User = Depends(require_permission("admission", "verify_document")),
    db: AsyncSession = Depends(get_db)
):
    admission = await get_admission(db, admission_id)
    document = _get_document(admission, document_id)
    document.verified = True
    document.verified_by_id = current_user.id
    document.verified_at = utcnow()
    await db.commit()

    logger.log_domain_event("AdmissionDocument", "verified", document_id, admission_id=admission_id)
    return ok(dump(AdmissionDocumentResponse, document))


@router.delete("/{admission_id}/documents/{document_id}")
async def delete_admission_document(
    admission_id: str,
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    admission = await get_admission(db, admission_id)
    enforce(current_user, "delete_document", "admission", admission)
    document = _get_document(admission, document_id)

    url = document.file_url
    admission.documents.remove(document)
    await db.commit()
    await storage_service.delete(url)

    logger.log_domain_event("AdmissionDocument", "deleted", document_id, admission_id=admission_id)
    return ok({})
