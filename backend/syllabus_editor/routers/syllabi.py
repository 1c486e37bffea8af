from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import actions
from ..db import get_db
from ..editing import build_export_view
from ..schemas import ActionResult, ExportView, Syllabus, SyllabusListResult, SyllabusResult
from ..syllabus_store import SyllabusStore
from .auth import User, get_current_user

router = APIRouter(prefix="/syllabi", tags=["syllabi"])

FORBIDDEN_MESSAGE = "No tiene permiso para ver este plan de estudios."
NOT_FOUND_MESSAGE = "Plan de Estudios no Encontrado"


def get_store(db: Optional[Session] = Depends(get_db)) -> SyllabusStore:
	return SyllabusStore(db)


def _raise_for_error(error: str) -> None:
	status = 503 if error == actions.DB_NOT_CONFIGURED else 500
	raise HTTPException(status_code=status, detail=error)


def load_owned(store: SyllabusStore, syllabus_id: str, user: User) -> Syllabus:
	result = actions.get_syllabus(store, syllabus_id)
	if result.error:
		_raise_for_error(result.error)
	if result.syllabus is None:
		raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
	if result.syllabus.owner_id != user.uid and not user.is_admin:
		raise HTTPException(status_code=403, detail=FORBIDDEN_MESSAGE)
	return result.syllabus


@router.post("", response_model=SyllabusResult, status_code=201)
def create(user: User = Depends(get_current_user), store: SyllabusStore = Depends(get_store)):
	return actions.create_syllabus(store, user.uid, user.display_name or user.email or "", user.email or "")


@router.get("", response_model=SyllabusListResult)
def list_mine(user: User = Depends(get_current_user), store: SyllabusStore = Depends(get_store)):
	return actions.get_syllabi(store, user.uid)


@router.get("/{syllabus_id}", response_model=SyllabusResult)
def fetch(syllabus_id: str, user: User = Depends(get_current_user), store: SyllabusStore = Depends(get_store)):
	return SyllabusResult(syllabus=load_owned(store, syllabus_id, user))


@router.put("/{syllabus_id}", response_model=SyllabusResult)
def save(
	syllabus_id: str,
	syllabus: Syllabus,
	user: User = Depends(get_current_user),
	store: SyllabusStore = Depends(get_store),
):
	existing = load_owned(store, syllabus_id, user)
	# Ownership only moves through the admin reassignment endpoint
	if syllabus.owner_id and syllabus.owner_id != existing.owner_id:
		raise HTTPException(status_code=400, detail=actions.OWNER_CHANGE)
	document = syllabus.model_copy(update={"id": syllabus_id, "owner_id": existing.owner_id})
	return actions.save_syllabus(store, document)


@router.delete("/{syllabus_id}", response_model=ActionResult)
def delete(syllabus_id: str, user: User = Depends(get_current_user), store: SyllabusStore = Depends(get_store)):
	load_owned(store, syllabus_id, user)
	return actions.delete_syllabus(store, syllabus_id)


@router.get("/{syllabus_id}/export", response_model=ExportView)
def export(syllabus_id: str, user: User = Depends(get_current_user), store: SyllabusStore = Depends(get_store)):
	return build_export_view(load_owned(store, syllabus_id, user))
