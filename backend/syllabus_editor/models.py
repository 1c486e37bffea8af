from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	uid = Column(String(64), primary_key=True, index=True)
	email = Column(String(256), unique=True, index=True, nullable=False)
	display_name = Column(String(256), nullable=True)
	password_hash = Column(String(256), nullable=False)
	# "user" or "admin"; read once at login and carried in the token
	role = Column(String(16), default="user", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Token jti
	session_id = Column(String(64), primary_key=True)
	uid = Column(String(64), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SyllabusRecord(Base):
	__tablename__ = "syllabi"
	id = Column(String(64), primary_key=True)
	owner_id = Column(String(64), index=True, nullable=False)
	creation_date = Column(DateTime(timezone=True), nullable=False)
	update_date = Column(DateTime(timezone=True), index=True, nullable=False)
	# Remaining document fields, camelCase keys, nested dates as ISO strings
	body = Column(JSON, nullable=False, default=dict)
