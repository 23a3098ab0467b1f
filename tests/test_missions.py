import copy

import pytest

from guardiao.modules.missions.service import format_viaturas

DADOS = {
    "posto": "1S",
    "nome_guerra": "SOUZA",
    "setor": "SOP",
    "tipo_missao": "Escolta",
    "data": "2026-11-10",
    "inicio": "08:00",
    "termino": "12:00",
    "local": "BASP",
    "efetivo": "4 militares",
    "responsavel": {"nome": "Cap Lima", "om": "GSD-SP", "telefone": "11987654321"},
    "viaturas": {"operacional": 2, "descaracterizada": 1},
    "alimentacao": {"almoco": True},
}


def _mission_row(fake_supabase, mission_id):
    return next(row for row in fake_supabase.rows("missoes_gsd") if row["id"] == mission_id)


@pytest.fixture
def requester(make_user):
    return make_user(rank="1S")


@pytest.fixture
def sop(make_user):
    return make_user(function_id="SOP_01", sector="SOP-01")


@pytest.fixture
def create_mission(client, auth_headers):
    def _create(user, draft=False, **changes):
        dados = {**copy.deepcopy(DADOS), **changes}
        response = client.post("/api/v1/missions", json={"dados_missao": dados, "draft": draft}, headers=auth_headers(user))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


class TestFormatViaturas:
    def test_formats(self):
        assert format_viaturas(None) == "Não especificado"
        assert format_viaturas("1 ônibus") == "1 ônibus"
        assert format_viaturas({"operacional": 2, "descaracterizada": 1}) == "2 VTR OPERACIONAL, 1 VTR DESCARACTERIZADA"
        assert format_viaturas({"operacional": 0, "caminhao_tropa": 0}) == "Nenhuma vtr solicitada"


class TestCreate:
    def test_create_pending_and_draft(self, requester, create_mission):
        assert create_mission(requester)["status"] == "PENDENTE"
        assert create_mission(requester, draft=True)["status"] == "RASCUNHO"

    def test_junior_rank_cannot_request(self, client, make_user, auth_headers):
        cabo = make_user(rank="CB")
        response = client.post("/api/v1/missions", json={"dados_missao": DADOS}, headers=auth_headers(cabo))
        assert response.status_code == 403

    def test_schedule_validation(self, client, requester, auth_headers):
        same_day = {**DADOS, "inicio": "14:00", "termino": "10:00"}
        response = client.post("/api/v1/missions", json={"dados_missao": same_day}, headers=auth_headers(requester))
        assert response.status_code == 422
        overnight = {**same_day, "data_termino": "2026-11-11"}
        response = client.post("/api/v1/missions", json={"dados_missao": overnight}, headers=auth_headers(requester))
        assert response.status_code == 201

    def test_unknown_mission_type(self, client, requester, auth_headers):
        response = client.post("/api/v1/missions", json={"dados_missao": {**DADOS, "tipo_missao": "Passeio"}},
                               headers=auth_headers(requester))
        assert response.status_code == 422


class TestVisibility:
    def test_owner_and_managers_only(self, client, requester, sop, make_user, auth_headers, create_mission):
        mission = create_mission(requester)
        stranger = make_user()
        assert client.get(f"/api/v1/missions/{mission['id']}", headers=auth_headers(requester)).status_code == 200
        assert client.get(f"/api/v1/missions/{mission['id']}", headers=auth_headers(stranger)).status_code == 403
        assert client.get(f"/api/v1/missions/{mission['id']}", headers=auth_headers(sop)).status_code == 200

    def test_mine_and_center(self, client, requester, sop, make_user, auth_headers, create_mission):
        create_mission(requester)
        create_mission(make_user(rank="SO"))
        mine = client.get("/api/v1/missions/mine", headers=auth_headers(requester)).json()
        assert len(mine) == 1
        assert client.get("/api/v1/missions", headers=auth_headers(requester)).status_code == 403
        everything = client.get("/api/v1/missions", headers=auth_headers(sop)).json()
        assert len(everything) == 2
        pending = client.get("/api/v1/missions", params={"status": "RASCUNHO"}, headers=auth_headers(sop)).json()
        assert pending == []


class TestEditHistory:
    def test_each_changed_field_is_recorded(self, client, requester, auth_headers, create_mission, fake_supabase):
        mission = create_mission(requester)
        changed = {**DADOS, "local": "HANGAR 2", "efetivo": "6 militares"}
        response = client.put(f"/api/v1/missions/{mission['id']}", json={"dados_missao": changed}, headers=auth_headers(requester))
        assert response.status_code == 200
        historico = response.json()["historico"]
        assert {h["campo"] for h in historico} == {"local", "efetivo"}
        local = next(h for h in historico if h["campo"] == "local")
        assert (local["tipo"], local["valor_anterior"], local["valor_novo"]) == ("edicao", "BASP", "HANGAR 2")
        assert _mission_row(fake_supabase, mission["id"])["dados_missao"]["local"] == "HANGAR 2"

    def test_no_change_is_rejected(self, client, requester, auth_headers, create_mission):
        mission = create_mission(requester)
        response = client.put(f"/api/v1/missions/{mission['id']}", json={"dados_missao": DADOS}, headers=auth_headers(requester))
        assert response.status_code == 400

    def test_owner_cannot_edit_after_decision(self, client, requester, sop, auth_headers, create_mission):
        mission = create_mission(requester)
        client.post(f"/api/v1/missions/{mission['id']}/decision", json={"decision": "APROVADA"}, headers=auth_headers(sop))
        changed = {**DADOS, "local": "HANGAR 2"}
        owner = client.put(f"/api/v1/missions/{mission['id']}", json={"dados_missao": changed}, headers=auth_headers(requester))
        assert owner.status_code == 400
        manager = client.put(f"/api/v1/missions/{mission['id']}", json={"dados_missao": changed}, headers=auth_headers(sop))
        assert manager.status_code == 200

    def test_comments(self, client, requester, auth_headers, create_mission):
        mission = create_mission(requester)
        blank = client.post(f"/api/v1/missions/{mission['id']}/comments", json={"comentario": "  "}, headers=auth_headers(requester))
        assert blank.status_code == 400
        response = client.post(f"/api/v1/missions/{mission['id']}/comments", json={"comentario": "Confirmar horário"},
                               headers=auth_headers(requester))
        entry = response.json()["historico"][-1]
        assert (entry["tipo"], entry["comentario"], entry["usuario_id"]) == ("comentario", "Confirmar horário", requester["id"])


class TestWorkflow:
    def test_submit_draft(self, client, requester, make_user, auth_headers, create_mission):
        draft = create_mission(requester, draft=True)
        other = make_user(rank="SO")
        assert client.post(f"/api/v1/missions/{draft['id']}/submit", headers=auth_headers(other)).status_code == 403
        response = client.post(f"/api/v1/missions/{draft['id']}/submit", headers=auth_headers(requester))
        assert response.json()["status"] == "PENDENTE"
        again = client.post(f"/api/v1/missions/{draft['id']}/submit", headers=auth_headers(requester))
        assert again.status_code == 400

    def test_rejection_requires_parecer(self, client, requester, sop, auth_headers, create_mission):
        mission = create_mission(requester)
        url = f"/api/v1/missions/{mission['id']}/decision"
        assert client.post(url, json={"decision": "REJEITADA"}, headers=auth_headers(sop)).status_code == 400
        response = client.post(url, json={"decision": "REJEITADA", "parecer": "Sem efetivo"}, headers=auth_headers(sop))
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "REJEITADA"
        assert body["parecer_sop"] == "Sem efetivo"
        assert body["historico"][-1]["valor_anterior"] == "PENDENTE"

    def test_decisions_follow_transition_table(self, client, requester, sop, auth_headers, create_mission):
        draft = create_mission(requester, draft=True)
        url = f"/api/v1/missions/{draft['id']}/decision"
        assert client.post(url, json={"decision": "APROVADA"}, headers=auth_headers(sop)).status_code == 400
        assert client.post(url, json={"decision": "FINALIZADA"}, headers=auth_headers(sop)).status_code == 422

    def test_decision_requires_manage_missions(self, client, requester, auth_headers, create_mission):
        mission = create_mission(requester)
        response = client.post(f"/api/v1/missions/{mission['id']}/decision", json={"decision": "APROVADA"},
                               headers=auth_headers(requester))
        assert response.status_code == 403


class TestGenerateOrder:
    def test_order_from_approved_request(self, client, requester, sop, auth_headers, create_mission, fake_supabase):
        mission = create_mission(requester)
        order_url = f"/api/v1/missions/{mission['id']}/order"
        assert client.post(order_url, headers=auth_headers(sop)).status_code == 400

        client.post(f"/api/v1/missions/{mission['id']}/decision", json={"decision": "APROVADA"}, headers=auth_headers(sop))
        response = client.post(order_url, headers=auth_headers(sop))
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "GERADA"
        assert order["omis_number"] == "1/GSD-SP"
        assert order["mission"] == "Escolta"
        assert order["mission_request_id"] == mission["id"]
        assert order["mission_commander_id"] == requester["id"]
        assert order["transport"] is True
        assert order["food"] is True
        assert "2 VTR OPERACIONAL, 1 VTR DESCARACTERIZADA" in order["description"]

        row = _mission_row(fake_supabase, mission["id"])
        assert row["status"] == "FINALIZADA"
        assert row["mission_order_id"] == order["id"]
        assert client.post(order_url, headers=auth_headers(sop)).status_code == 400


class TestStatistics:
    def test_counts_and_rankings(self, client, requester, sop, make_user, create_mission, auth_headers, fake_supabase):
        commander = make_user(rank="CAP", war_name="LIMA")
        create_mission(requester)
        create_mission(requester)
        create_mission(requester, posto="2S", nome_guerra="MELO")
        create_mission(requester, draft=True)
        fake_supabase.tables["mission_orders"] = [
            {"id": "o1", "mission": "Escolta", "status": "EM_MISSAO", "mission_commander_id": commander["id"]},
            {"id": "o2", "mission": "Escolta", "status": "PRONTA_PARA_EXECUCAO", "mission_commander_id": commander["id"]},
            {"id": "o3", "mission": "Patrulha", "status": "CONCLUIDA", "mission_commander_id": None},
            {"id": "o4", "mission": "", "status": "AGUARDANDO_ASSINATURA"},
        ]

        response = client.get("/api/v1/missions/statistics", headers=auth_headers(sop))
        assert response.status_code == 200, response.text
        stats = response.json()
        assert stats["total_orders"] == 4
        assert stats["active_orders"] == 2
        assert stats["completed_orders"] == 1
        assert stats["awaiting_signature"] == 1
        assert stats["orders_by_status"]["GERADA"] == 0
        assert stats["orders_by_category"][0] == {"name": "Escolta", "count": 2}
        assert {"name": "Outros", "count": 1} in stats["orders_by_category"]
        assert stats["requests_by_status"]["PENDENTE"] == 3
        assert stats["requests_by_status"]["RASCUNHO"] == 1
        assert stats["top_requesters"] == [{"name": "1S SOUZA", "count": 2}, {"name": "2S MELO", "count": 1}]
        assert stats["top_commanders"] == [{"name": "CAP LIMA", "count": 2}]

    def test_requires_mission_visibility(self, client, requester, auth_headers):
        assert client.get("/api/v1/missions/statistics", headers=auth_headers(requester)).status_code == 403
