from __future__ import annotations
from typing import Iterator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url

Base = declarative_base()


def make_engine(url: str) -> Engine:
	connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
	return create_engine(url, connect_args=connect_args, future=True)


# No engine at all when DATABASE_URL is blank; the store reports itself as not configured
engine: Optional[Engine] = make_engine(DATABASE_URL) if DATABASE_URL else None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True) if engine is not None else None


def get_db() -> Iterator[Optional[Session]]:
	if SessionLocal is None:
		yield None
		return
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind: Optional[Engine] = None) -> None:
	bind = bind or engine
	if bind is None:
		return
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	if "auth_users" in tables:
		cols = {c["name"] for c in inspector.get_columns("auth_users")}
		with bind.begin() as conn:
			if "display_name" not in cols:
				conn.exec_driver_sql("ALTER TABLE auth_users ADD COLUMN display_name VARCHAR(256)")
			if "role" not in cols:
				conn.exec_driver_sql("ALTER TABLE auth_users ADD COLUMN role VARCHAR(16) DEFAULT 'user' NOT NULL")
