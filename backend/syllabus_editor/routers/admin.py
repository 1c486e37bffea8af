from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import actions
from ..db import get_db
from ..schemas import SyllabusListResult, SyllabusResult, UserListResult
from ..syllabus_store import SyllabusStore
from .auth import User, require_admin
from .syllabi import NOT_FOUND_MESSAGE, get_store

router = APIRouter(prefix="/admin", tags=["admin"])


class ReassignRequest(BaseModel):
	owner_id: str


@router.get("/syllabi", response_model=SyllabusListResult)
def all_syllabi(admin: User = Depends(require_admin), store: SyllabusStore = Depends(get_store)):
	return actions.get_all_syllabi(store)


@router.get("/users", response_model=UserListResult)
def all_users(admin: User = Depends(require_admin), db: Optional[Session] = Depends(get_db)):
	return actions.get_all_users(db)


@router.post("/syllabi/{syllabus_id}/owner", response_model=SyllabusResult)
def reassign(
	syllabus_id: str,
	req: ReassignRequest,
	admin: User = Depends(require_admin),
	store: SyllabusStore = Depends(get_store),
):
	result = actions.reassign_syllabus(store, syllabus_id, req.owner_id)
	if result.error is None and result.syllabus is None:
		raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
	return result
