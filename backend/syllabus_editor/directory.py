from __future__ import annotations
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from .models import AuthUser
from .schemas import UserData
from .syllabus_store import StoreNotConfigured, StorePermissionDenied, is_permission_denied


def list_users(db: Optional[Session]) -> List[UserData]:
	"""All registered accounts, as exposed to the admin dashboard."""
	if db is None:
		raise StoreNotConfigured("user directory is not configured (DATABASE_URL is empty)")
	try:
		rows = db.execute(select(AuthUser).order_by(AuthUser.created_at)).scalars().all()
	except DBAPIError as err:
		db.rollback()
		if is_permission_denied(err):
			raise StorePermissionDenied(str(err.orig)) from err
		raise
	return [UserData(uid=r.uid, email=r.email, display_name=r.display_name) for r in rows]
