from datetime import date

import pytest

from guardiao.modules.attendance.service import week_bounds
from tests.conftest import PIN


@pytest.fixture
def sap01(make_user):
    return make_user(function_id="SAP_01", sector="SAP-01", rank="1T", war_name="RIBEIRO")


@pytest.fixture
def canil(make_user):
    return [make_user(sector="CANIL", war_name="ALVES"), make_user(sector="CANIL", war_name="BRAGA")]


@pytest.fixture
def save_sheet(client, sap01, auth_headers):
    def _save(militares, statuses, day="2026-10-19", call_type="INICIO", sector="CANIL"):
        payload = {
            "date": day,
            "sector": sector,
            "call_type": call_type,
            "records": [{"militar_id": m["id"], "status": s} for m, s in zip(militares, statuses)],
        }
        return client.post("/api/v1/attendance", json=payload, headers=auth_headers(sap01))
    return _save


class TestWeekBounds:
    def test_monday_to_sunday(self):
        assert week_bounds(date(2026, 10, 22)) == (date(2026, 10, 19), date(2026, 10, 25))
        assert week_bounds(date(2026, 10, 19)) == (date(2026, 10, 19), date(2026, 10, 25))


class TestSheets:
    def test_save_copies_militar_identity(self, save_sheet, canil, sap01):
        response = save_sheet(canil, ["P", "DPM"])
        assert response.status_code == 201
        sheet = response.json()
        assert sheet["status"] == "RASCUNHO"
        assert sheet["responsible"] == "1T RIBEIRO"
        assert {(r["militar_name"], r["status"]) for r in sheet["records"]} == {("ALVES", "P"), ("BRAGA", "DPM")}

    def test_retake_replaces_records(self, client, save_sheet, canil, sap01, auth_headers, fake_supabase):
        first = save_sheet(canil, ["P", "P"]).json()
        second = save_sheet(canil, ["F", "P"]).json()
        assert second["id"] == first["id"]
        assert len(fake_supabase.rows("daily_attendance")) == 1
        assert len(fake_supabase.rows("attendance_records")) == 2
        stored = client.get(f"/api/v1/attendance/{first['id']}", headers=auth_headers(sap01)).json()
        assert sorted(r["status"] for r in stored["records"]) == ["F", "P"]

    def test_failed_retake_keeps_previous_records(self, save_sheet, canil, fake_supabase, monkeypatch):
        save_sheet(canil, ["P", "P"])
        table = fake_supabase.table

        def failing_records_insert(name):
            query = table(name)
            if name == "attendance_records":
                def insert(payload):
                    raise RuntimeError("connection reset")
                query.insert = insert
            return query

        monkeypatch.setattr(fake_supabase, "table", failing_records_insert)
        response = save_sheet(canil, ["F", "F"])
        assert response.status_code == 500
        assert [r["status"] for r in fake_supabase.rows("attendance_records")] == ["P", "P"]

    def test_invalid_sheets(self, save_sheet, canil):
        assert save_sheet([canil[0], canil[0]], ["P", "F"]).status_code == 400
        assert save_sheet([{"id": "ghost"}], ["P"]).status_code == 400
        assert save_sheet(canil, ["P", "XYZ"]).status_code == 422
        assert save_sheet(canil, ["P", "P"], sector="COZINHA").status_code == 422
        assert save_sheet(canil, ["P", "P"], call_type="ALMOCO").status_code == 422
        assert save_sheet([], []).status_code == 422

    def test_list_filters(self, client, save_sheet, canil, sap01, auth_headers):
        save_sheet(canil, ["P", "P"])
        save_sheet(canil, ["P", "P"], day="2026-10-20")
        headers = auth_headers(sap01)
        assert len(client.get("/api/v1/attendance", headers=headers).json()) == 2
        one_day = client.get("/api/v1/attendance", params={"date": "2026-10-20"}, headers=headers).json()
        assert [s["date"] for s in one_day] == ["2026-10-20"]
        assert client.get("/api/v1/attendance", params={"sector": "EFSD"}, headers=headers).json() == []


class TestSignature:
    def test_sign_freezes_sheet(self, client, save_sheet, canil, sap01, auth_headers):
        sheet = save_sheet(canil, ["P", "P"]).json()
        url = f"/api/v1/attendance/{sheet['id']}/sign"
        assert client.post(url, json={"pin": "0000"}, headers=auth_headers(sap01)).status_code == 401
        signed = client.post(url, json={"pin": PIN}, headers=auth_headers(sap01)).json()
        assert signed["status"] == "ASSINADA"
        assert signed["signed_by"] == "1T RIBEIRO"
        assert client.post(url, json={"pin": PIN}, headers=auth_headers(sap01)).status_code == 409
        assert save_sheet(canil, ["F", "F"]).status_code == 409

    def test_sign_requires_permission(self, client, save_sheet, canil, auth_headers):
        sheet = save_sheet(canil, ["P", "P"]).json()
        response = client.post(f"/api/v1/attendance/{sheet['id']}/sign", json={"pin": PIN}, headers=auth_headers(canil[0]))
        assert response.status_code == 403


class TestJustifications:
    def test_justification_keeps_original_status(self, client, save_sheet, canil, sap01, auth_headers, fake_supabase):
        sheet = save_sheet(canil, ["F", "P"]).json()
        url = f"/api/v1/attendance/{sheet['id']}/justifications"
        body = {"militar_id": canil[0]["id"], "new_status": "JS", "justification": "Atestado médico"}
        assert client.post(url, json=body, headers=auth_headers(sap01)).status_code == 400

        client.post(f"/api/v1/attendance/{sheet['id']}/sign", json={"pin": PIN}, headers=auth_headers(sap01))
        assert client.post(url, json={**body, "justification": " "}, headers=auth_headers(sap01)).status_code == 400
        response = client.post(url, json=body, headers=auth_headers(sap01))
        assert response.status_code == 201
        justification = response.json()
        assert (justification["original_status"], justification["new_status"]) == ("F", "JS")
        assert justification["performed_by"] == "1T RIBEIRO"
        assert justification["sector"] == "CANIL"

        record = next(r for r in fake_supabase.rows("attendance_records") if r["militar_id"] == canil[0]["id"])
        assert record["status"] == "JS"
        listed = client.get("/api/v1/attendance/justifications", params={"date": "2026-10-19"},
                            headers=auth_headers(sap01)).json()
        assert len(listed) == 1

    def test_militar_not_on_sheet(self, client, save_sheet, canil, sap01, auth_headers):
        sheet = save_sheet(canil[:1], ["F"]).json()
        client.post(f"/api/v1/attendance/{sheet['id']}/sign", json={"pin": PIN}, headers=auth_headers(sap01))
        body = {"militar_id": canil[1]["id"], "new_status": "JS", "justification": "Atestado"}
        response = client.post(f"/api/v1/attendance/{sheet['id']}/justifications", json=body, headers=auth_headers(sap01))
        assert response.status_code == 404


class TestReports:
    def test_weekly_grid(self, client, save_sheet, canil, sap01, auth_headers):
        save_sheet(canil, ["P", "F"], day="2026-10-19", call_type="INICIO")
        save_sheet(canil, ["P", "P"], day="2026-10-19", call_type="TERMINO")
        save_sheet(canil, ["MIS", "P"], day="2026-10-21", call_type="INICIO")
        save_sheet(canil, ["P", "P"], day="2026-10-26", call_type="INICIO")

        grid = client.get("/api/v1/attendance/weekly", params={"sector": "CANIL", "week_start": "2026-10-22"},
                          headers=auth_headers(sap01)).json()
        assert (grid["week_start"], grid["week_end"]) == ("2026-10-19", "2026-10-25")
        assert len(grid["dates"]) == 7
        rows = {row["militar_name"]: row["days"] for row in grid["rows"]}
        assert rows["BRAGA"] == {"2026-10-19": {"INICIO": "F", "TERMINO": "P"}, "2026-10-21": {"INICIO": "P"}}
        assert rows["ALVES"]["2026-10-21"] == {"INICIO": "MIS"}

    def test_force_map_uses_latest_call(self, client, save_sheet, canil, sap01, auth_headers):
        save_sheet(canil, ["P", "DPM"], call_type="INICIO")
        save_sheet(canil, ["MIS", "F"], call_type="TERMINO")

        force = client.get("/api/v1/attendance/force-map", params={"date": "2026-10-19"}, headers=auth_headers(sap01)).json()
        assert force["total_efetivo"] == 3
        assert (force["prontos"], force["baixas"], force["externos"], force["indisponiveis"]) == (0, 0, 1, 1)
        assert [s["sector"] for s in force["sectors"]] == ["CANIL"]
        assert force["sectors"][0]["call_type"] == "TERMINO"
        assert force["sectors"][0]["signed"] is False
        assert force["missing_sectors"] == ["SAP-01"]

    def test_force_map_requires_view_personnel(self, client, canil, auth_headers):
        assert client.get("/api/v1/attendance/force-map", headers=auth_headers(canil[0])).status_code == 403
