from __future__ import annotations

from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from syllabus_editor.db import ensure_schema


def test_ensure_schema_adds_role_and_display_name_columns():
	eng = create_engine("sqlite://", poolclass=StaticPool, future=True)
	with eng.begin() as conn:
		conn.exec_driver_sql(
			"CREATE TABLE auth_users (uid VARCHAR(64) PRIMARY KEY, email VARCHAR(256), password_hash VARCHAR(256))"
		)
		conn.exec_driver_sql("INSERT INTO auth_users (uid, email, password_hash) VALUES ('u1', 'ana@x.com', 'x')")

	ensure_schema(bind=eng)

	cols = {c["name"] for c in inspect(eng).get_columns("auth_users")}
	assert {"display_name", "role"} <= cols
	with eng.connect() as conn:
		assert conn.exec_driver_sql("SELECT role FROM auth_users WHERE uid = 'u1'").scalar() == "user"
	eng.dispose()
