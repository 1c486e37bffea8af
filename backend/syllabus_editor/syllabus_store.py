from __future__ import annotations
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from .models import SyllabusRecord
from .schemas import EvaluationCriterion, Syllabus


logger = logging.getLogger(__name__)


DEFAULT_COURSE_NAME = "Nuevo Plan de Estudio"
DEFAULT_COURSE_CODE = "CURSO-101"

# Columns of SyllabusRecord; everything else goes into the JSON body
_RECORD_FIELDS = {"id", "owner_id", "creation_date", "update_date"}


class StoreError(Exception):
	pass


class StoreNotConfigured(StoreError):
	pass


class MissingIdentifier(StoreError):
	pass


class StorePermissionDenied(StoreError):
	pass


class OwnerMismatch(StoreError):
	pass


class InvalidDocument(StoreError):
	pass


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
	# SQLite drops tzinfo without converting, so values are normalised before
	# writing and naive values read back are UTC
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def is_permission_denied(err: DBAPIError) -> bool:
	orig = err.orig
	code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
	if code == "42501":
		return True
	return "permission denied" in str(orig).lower()


def default_evaluation_criteria() -> List[EvaluationCriterion]:
	return [
		EvaluationCriterion(evaluation="Examen Parcial", weight=30, instrument="Examen escrito"),
		EvaluationCriterion(evaluation="Examen Final", weight=30, instrument="Examen escrito"),
		EvaluationCriterion(evaluation="Proyecto Integrador", weight=25, instrument="Rúbrica de proyecto"),
		EvaluationCriterion(evaluation="Tareas y Participación", weight=15, instrument="Lista de cotejo"),
	]


def to_record_body(syllabus: Syllabus) -> Dict[str, Any]:
	# mode="json" turns every nested date into an ISO-8601 string
	return syllabus.model_dump(mode="json", by_alias=True, exclude=_RECORD_FIELDS)


def from_record(record: SyllabusRecord) -> Syllabus:
	data: Dict[str, Any] = dict(record.body or {})
	data.update(
		id=record.id,
		ownerId=record.owner_id,
		creationDate=as_utc(record.creation_date),
		updateDate=as_utc(record.update_date),
	)
	return Syllabus.model_validate(data)


class SyllabusStore:
	"""Whole-document CRUD for syllabi.

	``db`` may be None when no database is configured; every operation then
	fails with StoreNotConfigured before touching anything.
	"""

	def __init__(self, db: Optional[Session], *, clock: Callable[[], datetime] = utcnow) -> None:
		self.db = db
		self._clock = clock

	def _session(self) -> Session:
		if self.db is None:
			raise StoreNotConfigured("syllabus store is not configured (DATABASE_URL is empty)")
		return self.db

	@contextmanager
	def _translate_errors(self, db: Session) -> Iterator[None]:
		try:
			yield
		except DBAPIError as err:
			db.rollback()
			if is_permission_denied(err):
				raise StorePermissionDenied(str(err.orig)) from err
			raise

	def create(self, owner_id: str, author_name: str, author_email: str = "") -> Syllabus:
		db = self._session()
		if not owner_id:
			raise MissingIdentifier("owner id is required")
		now = as_utc(self._clock())
		syllabus = Syllabus(
			id=uuid.uuid4().hex,
			owner_id=owner_id,
			course_name=DEFAULT_COURSE_NAME,
			course_code=DEFAULT_COURSE_CODE,
			credits="0",
			theory_hours="0",
			practice_hours="0",
			independent_hours="0",
			instructor_name=author_name or "",
			instructor_email=author_email or "",
			evaluation_criteria=default_evaluation_criteria(),
			creation_date=now,
			update_date=now,
		)
		record = SyllabusRecord(
			id=syllabus.id,
			owner_id=owner_id,
			creation_date=now,
			update_date=now,
			body=to_record_body(syllabus),
		)
		with self._translate_errors(db):
			db.add(record)
			db.commit()
		logger.info("Created syllabus %s for owner %s", syllabus.id, owner_id)
		return syllabus

	def save(self, syllabus: Syllabus) -> Syllabus:
		"""Write the whole document, creating the record if it does not exist yet.

		The stored creation date wins over the supplied one for existing records,
		and the update date always moves forward. Documents that would not load
		back (e.g. a unit ending before it starts) are rejected before any write.
		"""
		db = self._session()
		if not syllabus.id or not syllabus.owner_id:
			raise MissingIdentifier("syllabus id and owner id are required")
		try:
			syllabus = Syllabus.model_validate(syllabus.model_dump(by_alias=True))
		except ValidationError as err:
			raise InvalidDocument(f"syllabus {syllabus.id} is invalid: {err}") from err
		now = as_utc(self._clock())
		with self._translate_errors(db):
			record = db.get(SyllabusRecord, syllabus.id)
			if record is None:
				record = SyllabusRecord(
					id=syllabus.id,
					owner_id=syllabus.owner_id,
					creation_date=as_utc(syllabus.creation_date) if syllabus.creation_date else now,
				)
				db.add(record)
			else:
				if record.owner_id != syllabus.owner_id:
					raise OwnerMismatch(f"syllabus {syllabus.id} belongs to another owner")
				previous = as_utc(record.update_date)
				if now <= previous:
					now = previous + timedelta(microseconds=1)
			record.update_date = now
			record.body = to_record_body(syllabus)
			db.commit()
			db.refresh(record)
			return from_record(record)

	def get_by_id(self, syllabus_id: str) -> Optional[Syllabus]:
		db = self._session()
		if not syllabus_id:
			raise MissingIdentifier("syllabus id is required")
		with self._translate_errors(db):
			record = db.get(SyllabusRecord, syllabus_id)
		return from_record(record) if record is not None else None

	def list_by_owner(self, owner_id: str) -> List[Syllabus]:
		db = self._session()
		if not owner_id:
			raise MissingIdentifier("owner id is required")
		with self._translate_errors(db):
			records = db.execute(select(SyllabusRecord).where(SyllabusRecord.owner_id == owner_id)).scalars().all()
		return [from_record(r) for r in records]

	def list_all(self) -> List[Syllabus]:
		db = self._session()
		with self._translate_errors(db):
			records = db.execute(select(SyllabusRecord).order_by(SyllabusRecord.update_date.desc())).scalars().all()
		return [from_record(r) for r in records]

	def delete(self, syllabus_id: str) -> bool:
		db = self._session()
		if not syllabus_id:
			raise MissingIdentifier("syllabus id is required")
		with self._translate_errors(db):
			record = db.get(SyllabusRecord, syllabus_id)
			if record is None:
				return False
			db.delete(record)
			db.commit()
		logger.info("Deleted syllabus %s", syllabus_id)
		return True

	def reassign(self, syllabus_id: str, new_owner_id: str) -> Optional[Syllabus]:
		db = self._session()
		if not syllabus_id or not new_owner_id:
			raise MissingIdentifier("syllabus id and new owner id are required")
		with self._translate_errors(db):
			record = db.get(SyllabusRecord, syllabus_id)
			if record is None:
				return None
			previous_owner = record.owner_id
			record.owner_id = new_owner_id
			record.update_date = max(as_utc(self._clock()), as_utc(record.update_date) + timedelta(microseconds=1))
			db.commit()
			db.refresh(record)
		logger.info("Reassigned syllabus %s from %s to %s", syllabus_id, previous_owner, new_owner_id)
		return from_record(record)
