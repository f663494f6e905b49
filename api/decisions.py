"""Decision log endpoints."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_decision_service
from src.core.decisions import DecisionService
from src.core.models.decision import Decision

router = APIRouter(prefix="/decisions", tags=["decisions"])


class DecisionItem(BaseModel):
    id: str
    decision: str
    rationale: str | None = None
    context: str | None = None
    decided_at: datetime
    project_id: str | None = None
    source: str
    source_reference: str | None = None
    supersedes_id: str | None = None
    is_current: bool | None = None
    created_at: datetime | None = None


class DecisionResponse(BaseModel):
    success: bool = True
    decision: DecisionItem


class DecisionListResponse(BaseModel):
    success: bool = True
    decisions: list[DecisionItem]
    count: int


class DecisionCreateRequest(BaseModel):
    decision: str | None = None
    rationale: str | None = None
    context: str | None = None
    decided_at: datetime | None = None
    project_id: uuid.UUID | None = None
    source: str | None = None
    source_reference: str | None = None
    supersedes_id: uuid.UUID | None = None


def _to_item(d: Decision, is_current: bool | None = None) -> DecisionItem:
    return DecisionItem(
        id=str(d.id),
        decision=d.decision,
        rationale=d.rationale,
        context=d.context,
        decided_at=d.decided_at,
        project_id=str(d.project_id) if d.project_id else None,
        source=d.source,
        source_reference=d.source_reference,
        supersedes_id=str(d.supersedes_id) if d.supersedes_id else None,
        is_current=is_current,
        created_at=d.created_at,
    )


@router.get("", response_model=DecisionListResponse)
async def list_decisions(
    project_id: uuid.UUID | None = Query(None),
    q: str | None = Query(None),
    superseded: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    service: DecisionService = Depends(get_decision_service),
):
    if q:
        rows = await service.search(
            q, project_id=project_id, include_superseded=superseded, limit=limit
        )
    else:
        rows = await service.find(project_id=project_id, include_superseded=superseded, limit=limit)
    items = [_to_item(d, is_current=None if superseded else True) for d in rows]
    return DecisionListResponse(decisions=items, count=len(items))


@router.post("", response_model=DecisionResponse, status_code=201)
async def log_decision(
    body: DecisionCreateRequest,
    service: DecisionService = Depends(get_decision_service),
):
    row = await service.log(
        body.decision or "",
        rationale=body.rationale,
        context=body.context,
        decided_at=body.decided_at,
        project_id=body.project_id,
        source=body.source or "manual",
        source_reference=body.source_reference,
        supersedes_id=body.supersedes_id,
    )
    return DecisionResponse(decision=_to_item(row, is_current=True))


@router.get("/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: uuid.UUID,
    service: DecisionService = Depends(get_decision_service),
):
    row = await service.get(decision_id)
    return DecisionResponse(decision=_to_item(row, is_current=await service.is_current(row.id)))
