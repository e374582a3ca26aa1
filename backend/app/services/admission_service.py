"""
Admission Service
- application number generation (YY + program code + yearly sequence)
- status transitions with an append-only history
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.admission import Admission, AdmissionStatusHistory, ApplicationStatus
from app.models.organization import Program


UNKNOWN_PROGRAM_CODE = "UNK"


def application_prefix(year: int, program_code: Optional[str]) -> str:
    return f"{year % 100:02d}{program_code or UNKNOWN_PROGRAM_CODE}"


def format_application_number(year: int, program_code: Optional[str], sequence: int) -> str:
    """format_application_number(2024, "CS", 7) -> "24CS0007" """
    return f"{application_prefix(year, program_code)}{sequence:04d}"


def next_sequence(prefix: str, issued: Iterable[str]) -> int:
    """One past the highest sequence already issued under prefix"""
    highest = 0
    for number in issued:
        if not number or not number.startswith(prefix):
            continue
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


async def next_application_number(
    db: AsyncSession, program_id: str, now: Optional[datetime] = None
) -> str:
    """Next number for program_id in the current calendar year"""
    now = now or utcnow()
    program = await db.get(Program, program_id)
    code = program.code if program else None
    prefix = application_prefix(now.year, code)

    issued = (await db.execute(
        select(Admission.application_number).where(
            Admission.program_id == program_id,
            Admission.application_number.like(f"{prefix}%"),
        )
    )).scalars().all()

    return format_application_number(now.year, code, next_sequence(prefix, issued))


def record_status(
    admission: Admission,
    status: ApplicationStatus,
    updated_by_id: Optional[str] = None,
    remarks: Optional[str] = None,
) -> Optional[AdmissionStatusHistory]:
    """
    Move the application to status and append a history entry.
    The first call (no history yet) always records, later calls only on change.
    """
    status = ApplicationStatus(status)
    history = admission.status_history
    if history and admission.application_status == status:
        return None

    admission.application_status = status
    if status == ApplicationStatus.SUBMITTED and admission.submitted_at is None:
        admission.submitted_at = utcnow()

    entry = AdmissionStatusHistory(
        status=status,
        remarks=remarks or f"Status changed to {status.value}",
        updated_by_id=updated_by_id,
        changed_at=utcnow(),
    )
    history.append(entry)

    logger.log_domain_event(
        "Admission", "status_changed", str(admission.id) if admission.id else None,
        application_number=admission.application_number, status=status.value,
    )
    return entry
