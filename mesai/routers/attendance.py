from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from mesai.audit import log_activity
from mesai.db import get_db
from mesai.models import WorkSession
from mesai.schemas import (
    ClockInRequest,
    ClockOutRequest,
    ManualSessionCreate,
    SessionEditRequest,
    WorkSessionRead,
)
from mesai.services.sessions import (
    cancel_session,
    clock_in,
    clock_out,
    create_manual_session,
    edit_session,
)

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _actor_id(request: Request) -> str:
    return (request.headers.get("X-Actor-Id") or "").strip() or "system"


def _log_session_action(db: Session, request: Request, session: WorkSession, action_type: str, **details) -> None:
    request.state.employee_id = session.employee_id
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type=action_type,
        resource_type="work_session",
        resource_id=session.id,
        company_id=session.company_id,
        employee_id=session.employee_id,
        details={"session_date": session.session_date.isoformat(), **details},
        request_id=getattr(request.state, "request_id", None),
    )


@router.post("/clock-in", response_model=WorkSessionRead, status_code=status.HTTP_201_CREATED)
def clock_in_endpoint(
    payload: ClockInRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSessionRead:
    session = clock_in(db, payload.employee_id, payload.clock_in)
    _log_session_action(db, request, session, "clock_in", clock_in=session.clock_in.isoformat())
    return session


@router.post("/sessions/{session_id}/clock-out", response_model=WorkSessionRead)
def clock_out_endpoint(
    session_id: int,
    payload: ClockOutRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSessionRead:
    session = clock_out(db, session_id, submitted_by=payload.submitted_by)
    _log_session_action(db, request, session, "clock_out", submitted_by=payload.submitted_by)
    return session


@router.post("/sessions", response_model=WorkSessionRead, status_code=status.HTTP_201_CREATED)
def create_manual_session_endpoint(
    payload: ManualSessionCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSessionRead:
    session = create_manual_session(
        db,
        payload.employee_id,
        payload.session_date,
        payload.clock_in,
        payload.clock_out,
        notes=payload.notes,
    )
    _log_session_action(db, request, session, "manual_session_created")
    return session


@router.patch("/sessions/{session_id}", response_model=WorkSessionRead)
def edit_session_endpoint(
    session_id: int,
    payload: SessionEditRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSessionRead:
    session = edit_session(
        db,
        session_id,
        clock_in_at=payload.clock_in,
        clock_out_at=payload.clock_out,
        notes=payload.notes,
    )
    _log_session_action(db, request, session, "session_edited")
    return session


@router.delete("/sessions/{session_id}", response_model=WorkSessionRead)
def cancel_session_endpoint(
    session_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSessionRead:
    session = cancel_session(db, session_id)
    _log_session_action(db, request, session, "session_cancelled")
    return session
