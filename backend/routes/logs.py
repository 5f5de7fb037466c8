# backend/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, Any
from datetime import datetime, date, time
from pydantic import BaseModel, ConfigDict

from database import get_db
from models.log import Log
from models.users import User, ROLE_ADMIN
from schemas.common import ApiResponse, Page, MAX_ID
from utils.tokenJWT import role_required

router = APIRouter(prefix="/logs", tags=["Logs"])

class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: Optional[datetime] = None
    meta: Optional[Any] = None


@router.get("", response_model=ApiResponse[Page[LogResponse]])
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, gt=0, le=MAX_ID, description="Filter by user id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[date] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="To date (YYYY-MM-DD), inclusive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status)
    if date_from:
        query = query.filter(Log.ts >= datetime.combine(date_from, time.min))
    if date_to:
        # Cover the whole end day
        query = query.filter(Log.ts <= datetime.combine(date_to, time.max))

    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return ApiResponse(data=Page(
        items=[LogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=page_size,
    ))
