from datetime import datetime

import pytest

from guardiao.config import settings
from guardiao.modules.mission_orders.notifications import MissionNotification, NotificationService
from guardiao.modules.mission_orders.schemas import MissionOrderCreate
from guardiao.modules.mission_orders.service import MissionOrderService
from tests.conftest import PIN

ORDER = {
    "date": "2026-11-10",
    "mission": "Escolta",
    "location": "BASP",
    "personnel": [{"function": "Comandante", "rank": "1S", "war_name": "SOUZA", "saram": "1000001"}],
}


class RecordingNotifier(NotificationService):
    def __init__(self):
        self.sent = []

    def send_mission_assignment(self, notification):
        self.sent.append(notification)
        return super().send_mission_assignment(notification)


@pytest.fixture
def sop(make_user):
    return make_user(function_id="SOP_01", sector="SOP-01")


@pytest.fixture
def ch_sop(make_user):
    return make_user(function_id="SOP_01", sector="CH-SOP", rank="MAJ", war_name="TAVARES")


@pytest.fixture
def create_order(client, sop, auth_headers):
    def _create(**changes):
        response = client.post("/api/v1/mission-orders", json={**ORDER, **changes}, headers=auth_headers(sop))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def advance(client, sop, auth_headers):
    def _advance(order_id, *statuses):
        for status in statuses:
            response = client.post(f"/api/v1/mission-orders/{order_id}/status", json={"status": status},
                                   headers=auth_headers(sop))
            assert response.status_code == 200, response.text
        return response.json()
    return _advance


READY_FOR_SIGNATURE = ("PENDENTE_SOP", "EM_ELABORACAO", "AGUARDANDO_ASSINATURA")


class TestCreate:
    def test_omis_numbers_are_sequential(self, create_order, sop):
        first = create_order()
        second = create_order(mission="Policiamento")
        assert first["omis_number"] == f"1/{settings.omis_suffix}"
        assert second["omis_number"] == f"2/{settings.omis_suffix}"
        assert first["status"] == "GERADA"
        assert first["mission_commander_id"] == sop["id"]
        assert first["personnel"][0]["armament"] == "Nenhum"

    def test_omis_number_uses_exact_count_beyond_max_rows(self, fake_supabase):
        year = datetime.utcnow().year
        fake_supabase.tables["mission_orders"] = [
            {"id": f"o{n}", "created_at": f"{year}-03-0{n}T10:00:00"} for n in range(1, 6)
        ] + [{"id": "old", "created_at": f"{year - 1}-12-31T10:00:00"}]
        fake_supabase.max_rows = 2
        assert MissionOrderService(fake_supabase).next_omis_number() == f"6/{settings.omis_suffix}"

    def test_invalid_personnel_function(self, client, sop, auth_headers):
        payload = {**ORDER, "personnel": [{"function": "Cozinheiro"}]}
        response = client.post("/api/v1/mission-orders", json=payload, headers=auth_headers(sop))
        assert response.status_code == 422

    def test_requires_manage_missions(self, client, make_user, auth_headers):
        response = client.post("/api/v1/mission-orders", json=ORDER, headers=auth_headers(make_user()))
        assert response.status_code == 403


class TestStatusWorkflow:
    def test_transitions_are_recorded_in_timeline(self, create_order, advance):
        order = create_order()
        updated = advance(order["id"], *READY_FOR_SIGNATURE)
        assert updated["status"] == "AGUARDANDO_ASSINATURA"
        assert [entry["text"] for entry in updated["timeline"]] == [
            "Status alterado para PENDENTE_SOP",
            "Status alterado para EM_ELABORACAO",
            "Status alterado para AGUARDANDO_ASSINATURA",
        ]

    def test_illegal_transition(self, client, sop, auth_headers, create_order):
        order = create_order()
        response = client.post(f"/api/v1/mission-orders/{order['id']}/status", json={"status": "EM_ELABORACAO"},
                               headers=auth_headers(sop))
        assert response.status_code == 400
        assert "GERADA -> EM_ELABORACAO" in response.json()["detail"]

    def test_signature_status_cannot_be_set_directly(self, client, sop, auth_headers, create_order, advance):
        order = create_order()
        advance(order["id"], *READY_FOR_SIGNATURE)
        response = client.post(f"/api/v1/mission-orders/{order['id']}/status",
                               json={"status": "PRONTA_PARA_EXECUCAO"}, headers=auth_headers(sop))
        assert response.status_code == 400

    def test_update_and_lock(self, client, sop, auth_headers, create_order, advance):
        order = create_order()
        url = f"/api/v1/mission-orders/{order['id']}"
        response = client.put(url, json={"location": "HANGAR 2"}, headers=auth_headers(sop))
        assert response.json()["location"] == "HANGAR 2"
        assert client.put(url, json={}, headers=auth_headers(sop)).status_code == 400
        advance(order["id"], "CANCELADA")
        assert client.put(url, json={"location": "BASP"}, headers=auth_headers(sop)).status_code == 400


class TestSignature:
    def test_ch_sop_signs_with_pin(self, client, ch_sop, auth_headers, create_order, advance):
        order = create_order()
        advance(order["id"], *READY_FOR_SIGNATURE)
        url = f"/api/v1/mission-orders/{order['id']}/sign"

        assert client.post(url, json={"pin": "9999"}, headers=auth_headers(ch_sop)).status_code == 401
        response = client.post(url, json={"pin": PIN}, headers=auth_headers(ch_sop))
        assert response.status_code == 200
        signed = response.json()
        assert signed["status"] == "PRONTA_PARA_EXECUCAO"
        assert signed["ch_sop_signature"].startswith("MAJ TAVARES - ")
        assert signed["timeline"][-1]["text"] == "OMIS assinada digitalmente por MAJ TAVARES"

    def test_other_sop_members_cannot_sign(self, client, sop, auth_headers, create_order, advance):
        order = create_order()
        advance(order["id"], *READY_FOR_SIGNATURE)
        response = client.post(f"/api/v1/mission-orders/{order['id']}/sign", json={"pin": PIN}, headers=auth_headers(sop))
        assert response.status_code == 403

    def test_cannot_sign_before_elaboration(self, client, ch_sop, auth_headers, create_order):
        order = create_order()
        response = client.post(f"/api/v1/mission-orders/{order['id']}/sign", json={"pin": PIN}, headers=auth_headers(ch_sop))
        assert response.status_code == 400


class TestExecution:
    @pytest.fixture
    def ready_order(self, client, ch_sop, auth_headers, create_order, advance):
        def _ready(**changes):
            order = create_order(**changes)
            advance(order["id"], *READY_FOR_SIGNATURE)
            response = client.post(f"/api/v1/mission-orders/{order['id']}/sign", json={"pin": PIN},
                                   headers=auth_headers(ch_sop))
            return response.json()
        return _ready

    def test_commander_runs_the_mission(self, client, make_user, auth_headers, ready_order):
        commander = make_user()
        order = ready_order(mission_commander_id=commander["id"])
        stranger = make_user()

        assert client.post(f"/api/v1/mission-orders/{order['id']}/start", headers=auth_headers(stranger)).status_code == 403
        started = client.post(f"/api/v1/mission-orders/{order['id']}/start", headers=auth_headers(commander)).json()
        assert started["status"] == "EM_MISSAO"
        assert started["start_time"] is not None

        finish_url = f"/api/v1/mission-orders/{order['id']}/finish"
        assert client.post(finish_url, json={"report": "  "}, headers=auth_headers(commander)).status_code == 400
        finished = client.post(finish_url, json={"report": "Sem alterações"}, headers=auth_headers(commander)).json()
        assert finished["status"] == "CONCLUIDA"
        assert finished["mission_report"] == "Sem alterações"
        assert finished["timeline"][-1]["type"] == "REPORT"

    def test_manager_may_start(self, client, sop, make_user, auth_headers, ready_order):
        order = ready_order(mission_commander_id=make_user()["id"])
        response = client.post(f"/api/v1/mission-orders/{order['id']}/start", headers=auth_headers(sop))
        assert response.json()["status"] == "EM_MISSAO"


class TestDelete:
    def test_only_generated_or_cancelled(self, client, sop, auth_headers, create_order, advance, fake_supabase):
        generated = create_order()
        pending = create_order()
        advance(pending["id"], "PENDENTE_SOP")

        assert client.delete(f"/api/v1/mission-orders/{pending['id']}", headers=auth_headers(sop)).status_code == 400
        assert client.delete(f"/api/v1/mission-orders/{generated['id']}", headers=auth_headers(sop)).status_code == 204
        advance(pending["id"], "CANCELADA")
        assert client.delete(f"/api/v1/mission-orders/{pending['id']}", headers=auth_headers(sop)).status_code == 204
        assert fake_supabase.rows("mission_orders") == []


class TestNotifications:
    def test_assigned_personnel_are_notified(self, fake_supabase, make_user):
        commander = make_user(rank="CAP", war_name="LIMA")
        with_email = make_user(rank="3S", war_name="ALVES")
        without_email = make_user(rank="CB", war_name="BRAGA", email=None)
        notifier = RecordingNotifier()
        service = MissionOrderService(fake_supabase, notifier=notifier)
        order = service.create_order(MissionOrderCreate(**{
            **ORDER,
            "mission_commander_id": commander["id"],
            "personnel": [
                {"function": "Efetivo S.I", "saram": with_email["saram"]},
                {"function": "Motorista (B)", "saram": without_email["saram"]},
                {"function": "Efetivo PA", "saram": ""},
            ],
        }), commander)

        assert service.notify_assigned_personnel(order) == 1
        assert len(notifier.sent) == 2
        delivered = next(n for n in notifier.sent if n.militar_email)
        assert delivered.militar_name == "3S ALVES"
        assert delivered.commander_name == "CAP LIMA"
        assert delivered.mission_date == "10/11/2026"

    def test_disabled_notifications(self, monkeypatch):
        monkeypatch.setattr(settings, "notifications_enabled", False)
        notification = MissionNotification(
            militar_email="alves@fab.mil.br", militar_name="3S ALVES", mission_title="Escolta",
            mission_date="10/11/2026", mission_location="BASP", omis_number="1/GSD-SP",
        )
        assert NotificationService().send_mission_assignment(notification) is False

    def test_message(self):
        notification = MissionNotification(
            militar_email="alves@fab.mil.br", militar_name="3S ALVES", mission_title="Escolta",
            mission_date="10/11/2026", mission_location="BASP", omis_number="1/GSD-SP",
        )
        assert notification.subject == "Escala de Missão: Escolta - OMIS #1/GSD-SP"
        assert "Comandante da Missão (Não designado)" in notification.body
