"""User-initiated operations.

Each function is the boundary of one user action: it never raises, it returns
an envelope whose ``error`` field carries a Spanish message for the UI.
"""
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy.orm import Session

from . import reference_validator
from .directory import list_users
from .gemini_client import GeminiClient
from .schemas import (
	ActionResult,
	ReferenceValidation,
	Syllabus,
	SyllabusListResult,
	SyllabusResult,
	UserListResult,
)
from .syllabus_store import (
	InvalidDocument,
	MissingIdentifier,
	OwnerMismatch,
	StoreNotConfigured,
	StorePermissionDenied,
	SyllabusStore,
)


logger = logging.getLogger(__name__)


DB_NOT_CONFIGURED = "La base de datos no está configurada."
NOT_AUTHENTICATED = "Usuario no autenticado."
MISSING_IDS = "Falta el ID del plan de estudios o del usuario."
ID_REQUIRED = "Se requiere el ID del plan de estudios."
PERMISSION_DENIED = "No tiene permisos para realizar esta operación."
OWNER_CHANGE = "No se puede cambiar el propietario de un plan de estudios al guardarlo."
INVALID_DOCUMENT = "El plan de estudios contiene datos inválidos; revise las fechas y los pesos de evaluación."
UNEXPECTED_ERROR = "Ocurrió un error inesperado. Por favor, inténtelo de nuevo."


def _message_for(err: Exception, missing: str = UNEXPECTED_ERROR) -> str:
	if isinstance(err, StoreNotConfigured):
		return DB_NOT_CONFIGURED
	if isinstance(err, MissingIdentifier):
		return missing
	if isinstance(err, StorePermissionDenied):
		return PERMISSION_DENIED
	if isinstance(err, OwnerMismatch):
		return OWNER_CHANGE
	if isinstance(err, InvalidDocument):
		return INVALID_DOCUMENT
	return UNEXPECTED_ERROR


def _log_failure(err: Exception, what: str) -> None:
	if isinstance(err, (StoreNotConfigured, MissingIdentifier, InvalidDocument)):
		logger.warning("%s rejected: %s", what, err)
	else:
		logger.exception("Error %s", what)


async def validate_reference(reference_text: str, *, client: Optional[GeminiClient] = None) -> ReferenceValidation:
	return await reference_validator.validate_reference(reference_text, client=client)


def create_syllabus(store: SyllabusStore, owner_id: str, author_name: str, author_email: str = "") -> SyllabusResult:
	try:
		return SyllabusResult(syllabus=store.create(owner_id, author_name, author_email))
	except Exception as err:
		_log_failure(err, "creating syllabus")
		return SyllabusResult(error=_message_for(err, NOT_AUTHENTICATED))


def save_syllabus(store: SyllabusStore, syllabus: Syllabus) -> SyllabusResult:
	try:
		return SyllabusResult(syllabus=store.save(syllabus))
	except Exception as err:
		_log_failure(err, "saving syllabus")
		return SyllabusResult(error=_message_for(err, MISSING_IDS))


def get_syllabi(store: SyllabusStore, owner_id: str) -> SyllabusListResult:
	try:
		return SyllabusListResult(syllabi=store.list_by_owner(owner_id))
	except StorePermissionDenied:
		# A brand new account may not be allowed to query yet: show it as "no documents"
		logger.info("Permission denied listing syllabi for %s; treating as empty", owner_id)
		return SyllabusListResult(syllabi=[])
	except Exception as err:
		_log_failure(err, "listing syllabi")
		return SyllabusListResult(error=_message_for(err, NOT_AUTHENTICATED))


def get_syllabus(store: SyllabusStore, syllabus_id: str) -> SyllabusResult:
	"""A missing document is ``syllabus=None`` with no error."""
	try:
		return SyllabusResult(syllabus=store.get_by_id(syllabus_id))
	except Exception as err:
		_log_failure(err, "fetching syllabus")
		return SyllabusResult(error=_message_for(err, ID_REQUIRED))


def delete_syllabus(store: SyllabusStore, syllabus_id: str) -> ActionResult:
	try:
		store.delete(syllabus_id)
		return ActionResult(success=True)
	except Exception as err:
		_log_failure(err, "deleting syllabus")
		return ActionResult(success=False, error=_message_for(err, ID_REQUIRED))


def get_all_syllabi(store: SyllabusStore) -> SyllabusListResult:
	try:
		return SyllabusListResult(syllabi=store.list_all())
	except Exception as err:
		_log_failure(err, "listing all syllabi")
		return SyllabusListResult(error=_message_for(err))


def get_all_users(db: Optional[Session]) -> UserListResult:
	try:
		return UserListResult(users=list_users(db))
	except Exception as err:
		_log_failure(err, "listing users")
		return UserListResult(error=_message_for(err, NOT_AUTHENTICATED))


def reassign_syllabus(store: SyllabusStore, syllabus_id: str, new_owner_id: str) -> SyllabusResult:
	try:
		return SyllabusResult(syllabus=store.reassign(syllabus_id, new_owner_id))
	except Exception as err:
		_log_failure(err, "reassigning syllabus")
		return SyllabusResult(error=_message_for(err, MISSING_IDS))
