"""
HTTP contract: auth, syllabus CRUD with ownership checks, export view,
reference validation and the admin endpoints.
"""
from __future__ import annotations

from datetime import datetime

import pytest

from syllabus_editor.reference_validator import EMPTY_REFERENCE_MESSAGE
from syllabus_editor.settings import settings

from conftest import register_and_login


pytestmark = pytest.mark.anyio


def _ts(value: str) -> datetime:
	return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def test_health_and_info(make_client):
	async with make_client() as client:
		assert (await client.get("/health")).json() == {"status": "ok"}
		info = (await client.get("/info")).json()
		assert info["status"] == "ok"
		assert "gemini_configured" in info


async def test_endpoints_require_a_token(make_client):
	async with make_client() as client:
		assert (await client.get("/syllabi")).status_code == 401
		assert (await client.post("/references/validate", json={"referenceText": "x"})).status_code == 401


async def test_register_rejects_duplicates_and_bad_input(make_client):
	async with make_client() as client:
		await register_and_login(client, "ana@x.com")
		dup = await client.post("/auth/register", json={"email": "ana@x.com", "password": "secret123"})
		assert dup.status_code == 409
		bad = await client.post("/auth/register", json={"email": "no-at-sign", "password": "secret123"})
		assert bad.status_code == 400
		wrong = await client.post("/auth/token", data={"username": "ana@x.com", "password": "nope"})
		assert wrong.status_code == 401


async def test_me_reports_role_and_logout_revokes_token(make_client):
	async with make_client() as client:
		headers = await register_and_login(client, "ana@x.com", name="Ana")
		me = (await client.get("/auth/me", headers=headers)).json()
		assert me["email"] == "ana@x.com"
		assert me["display_name"] == "Ana"
		assert me["role"] == "user"

		assert (await client.post("/auth/logout", headers=headers)).status_code == 204
		assert (await client.get("/auth/me", headers=headers)).status_code == 401


async def test_syllabus_lifecycle(make_client):
	async with make_client() as client:
		headers = await register_and_login(client, "ana@x.com", name="Ana")

		created = await client.post("/syllabi", headers=headers)
		assert created.status_code == 201
		body = created.json()
		assert body["error"] is None
		doc = body["syllabus"]
		assert doc["courseName"] == "Nuevo Plan de Estudio"
		assert doc["instructorName"] == "Ana"
		assert doc["learningUnits"] == []
		assert sum(c["weight"] for c in doc["evaluationCriteria"]) == 100

		listed = (await client.get("/syllabi", headers=headers)).json()
		assert [s["id"] for s in listed["syllabi"]] == [doc["id"]]

		doc["courseName"] = "Cálculo Diferencial"
		doc["learningUnits"] = [{
			"denomination": "Límites",
			"startDate": "2026-02-02",
			"endDate": "2026-03-13",
			"weeks": [{"specificContents": "Definición de límite"}],
			"methodology": "ABPr",
			"apaReference": "Stewart, J. (2018). Cálculo. Cengage.",
		}]
		saved = await client.put(f"/syllabi/{doc['id']}", json=doc, headers=headers)
		assert saved.status_code == 200
		saved_doc = saved.json()["syllabus"]
		assert _ts(saved_doc["updateDate"]) > _ts(doc["updateDate"])
		assert saved_doc["creationDate"] == doc["creationDate"]

		fetched = (await client.get(f"/syllabi/{doc['id']}", headers=headers)).json()["syllabus"]
		assert fetched["courseName"] == "Cálculo Diferencial"
		assert fetched["learningUnits"][0]["startDate"] == "2026-02-02"
		assert fetched["learningUnits"][0]["methodology"] == "ABPr"

		deleted = await client.delete(f"/syllabi/{doc['id']}", headers=headers)
		assert deleted.json() == {"success": True, "error": None}
		assert (await client.get(f"/syllabi/{doc['id']}", headers=headers)).status_code == 404


async def test_invalid_unit_dates_are_rejected(make_client):
	async with make_client() as client:
		headers = await register_and_login(client, "ana@x.com")
		doc = (await client.post("/syllabi", headers=headers)).json()["syllabus"]
		doc["learningUnits"] = [{"denomination": "U1", "startDate": "2026-05-01", "endDate": "2026-04-01"}]

		r = await client.put(f"/syllabi/{doc['id']}", json=doc, headers=headers)
		assert r.status_code == 422


async def test_other_users_cannot_read_or_change_a_syllabus(make_client):
	async with make_client() as client:
		ana = await register_and_login(client, "ana@x.com")
		beto = await register_and_login(client, "beto@x.com")
		doc = (await client.post("/syllabi", headers=ana)).json()["syllabus"]

		r = await client.get(f"/syllabi/{doc['id']}", headers=beto)
		assert r.status_code == 403
		assert r.json()["detail"] == "No tiene permiso para ver este plan de estudios."
		assert (await client.put(f"/syllabi/{doc['id']}", json=doc, headers=beto)).status_code == 403
		assert (await client.delete(f"/syllabi/{doc['id']}", headers=beto)).status_code == 403
		assert (await client.get(f"/syllabi/{doc['id']}/export", headers=beto)).status_code == 403
		assert (await client.get("/syllabi", headers=beto)).json()["syllabi"] == []


async def test_owner_cannot_be_changed_through_save(make_client):
	async with make_client() as client:
		ana = await register_and_login(client, "ana@x.com")
		doc = (await client.post("/syllabi", headers=ana)).json()["syllabus"]
		doc["ownerId"] = "someone-else"

		r = await client.put(f"/syllabi/{doc['id']}", json=doc, headers=ana)
		assert r.status_code == 400


async def test_export_view_lists_missing_fields(make_client):
	async with make_client() as client:
		headers = await register_and_login(client, "ana@x.com")
		doc = (await client.post("/syllabi", headers=headers)).json()["syllabus"]

		view = (await client.get(f"/syllabi/{doc['id']}/export", headers=headers)).json()

		assert view["ready"] is False
		assert "Unidades de Aprendizaje" in view["missingFields"]
		assert view["weightsTotal"] == 100
		assert view["weightsWarning"] is None
		assert view["syllabus"]["id"] == doc["id"]


async def test_validate_blank_reference_over_http(make_client):
	async with make_client() as client:
		headers = await register_and_login(client, "ana@x.com")
		r = await client.post("/references/validate", json={"referenceText": "  "}, headers=headers)

		assert r.status_code == 200
		assert r.json() == {"isValid": False, "feedback": EMPTY_REFERENCE_MESSAGE}


async def test_admin_endpoints(make_client, monkeypatch):
	monkeypatch.setattr(settings, "admin_email", "admin@x.com")
	async with make_client() as client:
		ana = await register_and_login(client, "ana@x.com", name="Ana")
		admin = await register_and_login(client, "Admin@x.com")
		first = (await client.post("/syllabi", headers=ana)).json()["syllabus"]
		second = (await client.post("/syllabi", headers=ana)).json()["syllabus"]
		await client.put(f"/syllabi/{first['id']}", json=first, headers=ana)

		assert (await client.get("/admin/syllabi", headers=ana)).status_code == 403
		assert (await client.get("/admin/users", headers=ana)).status_code == 403

		all_syllabi = (await client.get("/admin/syllabi", headers=admin)).json()
		assert all_syllabi["error"] is None
		assert [s["id"] for s in all_syllabi["syllabi"]] == [first["id"], second["id"]]

		users = (await client.get("/admin/users", headers=admin)).json()["users"]
		assert {u["email"] for u in users} == {"ana@x.com", "Admin@x.com"}
		assert {"uid", "email", "displayName"} == set(users[0])

		# admins can open any syllabus from the dashboard
		assert (await client.get(f"/syllabi/{second['id']}", headers=admin)).status_code == 200

		ana_uid = (await client.get("/auth/me", headers=ana)).json()["uid"]
		admin_uid = (await client.get("/auth/me", headers=admin)).json()["uid"]
		moved = await client.post(f"/admin/syllabi/{second['id']}/owner", json={"owner_id": admin_uid}, headers=admin)
		assert moved.status_code == 200
		assert moved.json()["syllabus"]["ownerId"] == admin_uid
		assert ana_uid != admin_uid
		assert (await client.get(f"/syllabi/{second['id']}", headers=ana)).status_code == 403

		missing = await client.post("/admin/syllabi/nope/owner", json={"owner_id": admin_uid}, headers=admin)
		assert missing.status_code == 404
