from tests.conftest import PASSWORD

NEW_USER = {
    "username": "pereira",
    "password": "senha-forte-123",
    "name": "Carlos Pereira",
    "war_name": "pereira",
    "email": "pereira@fab.mil.br",
    "rank": "3S",
    "saram": "7111111",
    "sector": "EFSD",
    "function_id": "SAP_03",
    "access_level": "N2",
}


def _row(fake_supabase, user_id):
    return next((row for row in fake_supabase.rows("users") if row["id"] == user_id), None)


class TestListAndGet:
    def test_list_requires_view_personnel(self, client, make_user, auth_headers):
        user = make_user()
        assert client.get("/api/v1/users", headers=auth_headers(user)).status_code == 403

    def test_list_ordered_and_searchable(self, client, make_user, auth_headers):
        manager = make_user(function_id="SAP_01", display_order=5)
        make_user(war_name="ALVES", display_order=1)
        make_user(war_name="BRAGA", display_order=3)
        response = client.get("/api/v1/users", headers=auth_headers(manager))
        assert [u["war_name"] for u in response.json()] == ["ALVES", "BRAGA", manager["war_name"]]
        response = client.get("/api/v1/users", params={"search": "brag"}, headers=auth_headers(manager))
        assert [u["war_name"] for u in response.json()] == ["BRAGA"]

    def test_get_self_or_with_permission(self, client, make_user, auth_headers):
        user = make_user()
        other = make_user()
        assert client.get(f"/api/v1/users/{user['id']}", headers=auth_headers(user)).status_code == 200
        assert client.get(f"/api/v1/users/{other['id']}", headers=auth_headers(user)).status_code == 403
        manager = make_user(function_id="SEC_CMDO")
        assert client.get(f"/api/v1/users/{other['id']}", headers=auth_headers(manager)).status_code == 200

    def test_get_by_saram(self, client, make_user, auth_headers):
        keeper = make_user(function_id="SAP_03")
        militar = make_user()
        response = client.get(f"/api/v1/users/by-saram/{militar['saram']}", headers=auth_headers(keeper))
        assert response.status_code == 200
        assert response.json()["id"] == militar["id"]
        assert client.get("/api/v1/users/by-saram/0000000", headers=auth_headers(keeper)).status_code == 404


class TestCreateAndDelete:
    def test_admin_creates_approved_user(self, client, make_user, auth_headers, fake_supabase):
        admin = make_user(function_id="ADMIN_TOTAL")
        response = client.post("/api/v1/users", json=NEW_USER, headers=auth_headers(admin))
        assert response.status_code == 201
        row = _row(fake_supabase, response.json()["id"])
        assert row["approved"] is True
        assert row["function_id"] == "SAP_03"
        assert row["access_level"] == "N2"
        login = client.post("/api/v1/auth/login", json={"identifier": "7111111", "password": "senha-forte-123"})
        assert login.status_code == 200

    def test_unknown_function_rejected(self, client, make_user, auth_headers):
        admin = make_user(function_id="ADMIN_TOTAL")
        response = client.post("/api/v1/users", json={**NEW_USER, "function_id": "GOD"}, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_delete_user_and_credentials(self, client, make_user, auth_headers, fake_supabase):
        admin = make_user(function_id="ADMIN_TOTAL")
        victim = make_user()
        fake_supabase.table("webauthn_credentials").insert({"user_id": victim["id"], "credential_id": "abc"}).execute()
        response = client.delete(f"/api/v1/users/{victim['id']}", headers=auth_headers(admin))
        assert response.status_code == 204
        assert _row(fake_supabase, victim["id"]) is None
        assert fake_supabase.rows("webauthn_credentials") == []
        assert victim["id"] not in fake_supabase.accounts

    def test_cannot_delete_self(self, client, make_user, auth_headers):
        admin = make_user(function_id="ADMIN_TOTAL")
        assert client.delete(f"/api/v1/users/{admin['id']}", headers=auth_headers(admin)).status_code == 400


class TestUpdate:
    def test_self_edit_limited_to_contact_fields(self, client, make_user, auth_headers, fake_supabase):
        user = make_user()
        headers = auth_headers(user)
        ok = client.put(f"/api/v1/users/{user['id']}", json={"war_name": "novo", "phone_number": "11987654321"}, headers=headers)
        assert ok.status_code == 200
        assert _row(fake_supabase, user["id"])["war_name"] == "NOVO"
        denied = client.put(f"/api/v1/users/{user['id']}", json={"rank": "CEL"}, headers=headers)
        assert denied.status_code == 403

    def test_cannot_edit_others_without_permission(self, client, make_user, auth_headers):
        user = make_user()
        other = make_user()
        response = client.put(f"/api/v1/users/{other['id']}", json={"war_name": "X1"}, headers=auth_headers(user))
        assert response.status_code == 403

    def test_manager_edits_any_field(self, client, make_user, auth_headers, fake_supabase):
        manager = make_user(function_id="SAP_01")
        other = make_user()
        response = client.put(f"/api/v1/users/{other['id']}", json={"rank": "SO", "sector": "CANIL"}, headers=auth_headers(manager))
        assert response.status_code == 200
        row = _row(fake_supabase, other["id"])
        assert (row["rank"], row["sector"]) == ("SO", "CANIL")

    def test_saram_conflict(self, client, make_user, auth_headers):
        manager = make_user(function_id="SAP_01")
        other = make_user()
        response = client.put(f"/api/v1/users/{other['id']}", json={"saram": manager["saram"]}, headers=auth_headers(manager))
        assert response.status_code == 409


class TestAdministration:
    def test_approve_then_revoke(self, client, make_user, auth_headers, fake_supabase):
        manager = make_user(function_id="SAP_01")
        pending = make_user(approved=False)
        assert client.post(f"/api/v1/users/{pending['id']}/approve", headers=auth_headers(manager)).status_code == 200
        assert _row(fake_supabase, pending["id"])["approved"] is True
        response = client.post(f"/api/v1/users/{pending['id']}/reject", headers=auth_headers(manager))
        assert response.status_code == 200
        assert response.json()["approved"] is False
        assert _row(fake_supabase, pending["id"])["approved"] is False

    def test_refusing_pending_registration_deletes_it(self, client, make_user, auth_headers, fake_supabase):
        manager = make_user(function_id="SAP_01")
        registered = client.post("/api/v1/auth/register", json=NEW_USER)
        assert registered.status_code == 201, registered.text
        user_id = registered.json()["user_id"]

        response = client.post(f"/api/v1/users/{user_id}/reject", headers=auth_headers(manager))
        assert response.status_code == 204
        assert _row(fake_supabase, user_id) is None
        assert user_id not in fake_supabase.accounts

        again = client.post("/api/v1/auth/register", json=NEW_USER)
        assert again.status_code == 201

    def test_set_permissions(self, client, make_user, auth_headers, fake_supabase):
        admin = make_user(function_id="ADMIN_TOTAL")
        user = make_user()
        response = client.put(
            f"/api/v1/users/{user['id']}/permissions",
            json={"function_id": "SOP_03", "custom_permissions": ["view_personnel", "view_personnel"]},
            headers=auth_headers(admin)
        )
        assert response.status_code == 200
        row = _row(fake_supabase, user["id"])
        assert row["function_id"] == "SOP_03"
        assert row["custom_permissions"] == ["view_personnel"]
        bad = client.put(
            f"/api/v1/users/{user['id']}/permissions",
            json={"function_id": "SOP_03", "custom_permissions": ["fly"]},
            headers=auth_headers(admin)
        )
        assert bad.status_code == 400

    def test_permissions_take_effect_on_next_request(self, client, make_user, auth_headers, fake_supabase):
        admin = make_user(function_id="ADMIN_TOTAL")
        user = make_user()
        headers = auth_headers(user)
        assert client.get("/api/v1/users", headers=headers).status_code == 403
        client.put(f"/api/v1/users/{user['id']}/permissions",
                   json={"function_id": "PADRAO", "custom_permissions": ["view_personnel"]},
                   headers=auth_headers(admin))
        assert client.get("/api/v1/users", headers=headers).status_code == 200

    def test_reorder(self, client, make_user, auth_headers, fake_supabase):
        manager = make_user(function_id="SAP_01")
        a = make_user()
        b = make_user()
        response = client.put(
            "/api/v1/users/order",
            json=[{"id": a["id"], "display_order": 9}, {"id": b["id"], "display_order": 8}, {"id": "ghost", "display_order": 1}],
            headers=auth_headers(manager)
        )
        assert response.json() == {"updated": 2}
        assert _row(fake_supabase, a["id"])["display_order"] == 9

    def test_force_password_reset(self, client, make_user, auth_headers, fake_supabase):
        admin = make_user(function_id="ADMIN_TOTAL")
        user = make_user()
        response = client.post(f"/api/v1/users/{user['id']}/reset-password", headers=auth_headers(admin))
        assert response.status_code == 200
        temporary = response.json()["temporary_password"]
        assert _row(fake_supabase, user["id"])["reset_password_at_login"] is True
        old = client.post("/api/v1/auth/login", json={"identifier": user["saram"], "password": PASSWORD})
        assert old.status_code == 401
        new = client.post("/api/v1/auth/login", json={"identifier": user["saram"], "password": temporary})
        assert new.status_code == 200
        assert new.json()["must_change_password"] is True
