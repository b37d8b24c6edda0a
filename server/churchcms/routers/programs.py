from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from churchcms.auth.deps import require_module
from churchcms.core.db import get_db
from churchcms.models.program import Program
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.program import ProgramCreate, ProgramOut, ProgramUpdate
from churchcms.services import notifications
from churchcms.services.audit import record_audit
from churchcms.services.user_accounts import utc_naive

router = APIRouter(prefix="/programs", tags=["programs"])


def _get_program_or_404(db: Session, program_id: int) -> Program:
    program = db.get(Program, program_id)
    if not program:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found")
    return program


@router.get("", response_model=Envelope[list[ProgramOut]])
def list_programs(
    db: Session = Depends(get_db),
    _: User = Depends(require_module("programs")),
) -> Envelope[list[ProgramOut]]:
    programs = db.query(Program).order_by(Program.date.desc(), Program.id.desc()).all()
    return Envelope(data=[ProgramOut.from_orm(program) for program in programs])


@router.post("", response_model=Envelope[ProgramOut], status_code=status.HTTP_201_CREATED)
def create_program(
    request: Request,
    payload: ProgramCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("programs")),
) -> Envelope[ProgramOut]:
    program = Program(
        title=payload.title,
        description=payload.description,
        date=utc_naive(payload.date),
        location=payload.location,
    )
    db.add(program)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="program_created",
        resource_type="program",
        resource_id=program.id,
        details=f"Created program {program.title}",
        request=request,
    )
    db.commit()
    db.refresh(program)

    background_tasks.add_task(notifications.dispatch_program_created, program.id)
    return Envelope(data=ProgramOut.from_orm(program))


@router.get("/{program_id}", response_model=Envelope[ProgramOut])
def get_program(
    program_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("programs")),
) -> Envelope[ProgramOut]:
    return Envelope(data=ProgramOut.from_orm(_get_program_or_404(db, program_id)))


@router.put("/{program_id}", response_model=Envelope[ProgramOut])
def update_program(
    program_id: int,
    request: Request,
    payload: ProgramUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("programs")),
) -> Envelope[ProgramOut]:
    program = _get_program_or_404(db, program_id)
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("title"):
        program.title = updates["title"]
    if updates.get("date"):
        program.date = utc_naive(updates["date"])
    if "description" in updates:
        program.description = (updates["description"] or "").strip() or None
    if "location" in updates:
        program.location = (updates["location"] or "").strip() or None

    record_audit(
        db,
        actor=actor,
        action="program_updated",
        resource_type="program",
        resource_id=program.id,
        details=f"Updated program {program.title}",
        request=request,
    )
    db.commit()
    db.refresh(program)
    return Envelope(data=ProgramOut.from_orm(program))


@router.delete("/{program_id}", response_model=MessageResponse)
def delete_program(
    program_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("programs")),
) -> MessageResponse:
    program = _get_program_or_404(db, program_id)
    title = program.title
    db.delete(program)
    record_audit(
        db,
        actor=actor,
        action="program_deleted",
        resource_type="program",
        resource_id=program_id,
        details=f"Deleted program {title}",
        request=request,
    )
    db.commit()
    return MessageResponse(message="Program deleted")
