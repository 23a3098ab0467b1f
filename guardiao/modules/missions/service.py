from supabase import Client
from guardiao.config.constants import VIATURA_LABELS
from guardiao.core.dependencies import can_request_mission
from guardiao.core.security import signer_label
from guardiao.core.transitions import ensure_transition
from guardiao.modules.missions.schemas import (
    MissionCreate, MissionUpdate, MissionResponse, MissionStatus, MissionStatistics, CountItem,
    MISSION_TRANSITIONS, OWNER_EDITABLE
)
from guardiao.modules.mission_orders.schemas import MissionOrderCreate, MissionOrderResponse, OrderStatus
from guardiao.modules.mission_orders.service import MissionOrderService
from typing import List, Optional, Union, Dict, Any
from collections import Counter
from fastapi import HTTPException
from datetime import datetime
import logging
import uuid

logger = logging.getLogger(__name__)

TOP_N = 5
ACTIVE_ORDER_STATUSES = {OrderStatus.EM_MISSAO.value, OrderStatus.PRONTA_PARA_EXECUCAO.value}


def format_viaturas(viaturas: Union[str, Dict[str, int], None]) -> str:
    """{'operacional': 2, 'descaracterizada': 1} -> '2 VTR OPERACIONAL, 1 VTR DESCARACTERIZADA'"""
    if not viaturas:
        return "Não especificado"
    if isinstance(viaturas, str):
        return viaturas
    parts = [
        f"{count} {VIATURA_LABELS.get(key, key)}"
        for key, count in viaturas.items()
        if count and count > 0
    ]
    return ", ".join(parts) if parts else "Nenhuma vtr solicitada"


def _has_vehicles(viaturas: Union[str, Dict[str, int], None]) -> bool:
    if isinstance(viaturas, dict):
        return any((count or 0) > 0 for count in viaturas.values())
    return bool(viaturas)


class MissionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, mission_id: str) -> dict:
        try:
            result = self.supabase.table("missoes_gsd")\
                .select("*")\
                .eq("id", mission_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Mission not found")
        return result.data[0]

    def _save(self, mission_id: str, changes: dict) -> MissionResponse:
        changes["updated_at"] = datetime.utcnow().isoformat()
        result = self.supabase.table("missoes_gsd")\
            .update(changes)\
            .eq("id", mission_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Mission not found")
        return MissionResponse.from_row(result.data[0])

    @staticmethod
    def _historico_entry(user: dict, tipo: str, **fields) -> dict:
        return {
            "id": str(uuid.uuid4()),
            "tipo": tipo,
            "usuario": user.get("name") or "Sistema",
            "usuario_id": user.get("id"),
            "data": datetime.utcnow().isoformat(),
            **fields,
        }

    @staticmethod
    def _ensure_owner_or_manager(row: dict, user: dict, is_manager: bool) -> None:
        if not is_manager and row["solicitante_id"] != user["id"]:
            raise HTTPException(status_code=403, detail="Mission not accessible")

    def create_mission(self, mission_data: MissionCreate, user: dict) -> MissionResponse:
        """Create a request as RASCUNHO (draft) or PENDENTE"""
        if not can_request_mission(user):
            raise HTTPException(status_code=403, detail="Posto/graduação sem permissão para solicitar missões")
        try:
            status = MissionStatus.RASCUNHO if mission_data.draft else MissionStatus.PENDENTE
            insert_data = {
                "solicitante_id": user["id"],
                "dados_missao": mission_data.dados_missao.model_dump(mode="json"),
                "status": status.value,
                "historico": [],
            }
            result = self.supabase.table("missoes_gsd").insert(insert_data).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create mission")
            logger.info(f"Mission request created by {user['id']} ({status.value})")
            return MissionResponse.from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_missions(
        self,
        status: Optional[str] = None,
        solicitante_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[MissionResponse]:
        try:
            query = self.supabase.table("missoes_gsd").select("*")
            if status:
                query = query.eq("status", status)
            if solicitante_id:
                query = query.eq("solicitante_id", solicitante_id)
            result = query.order("data_criacao", desc=True).limit(limit).offset(offset).execute()
            return [MissionResponse.from_row(row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_mission(self, mission_id: str, user: dict, can_view_all: bool) -> MissionResponse:
        row = self._get_row(mission_id)
        self._ensure_owner_or_manager(row, user, can_view_all)
        return MissionResponse.from_row(row)

    def update_mission(self, mission_id: str, mission_data: MissionUpdate, user: dict, is_manager: bool) -> MissionResponse:
        """Replace dados_missao, appending one historico entry per changed field"""
        row = self._get_row(mission_id)
        self._ensure_owner_or_manager(row, user, is_manager)
        if not is_manager and row["status"] not in OWNER_EDITABLE:
            raise HTTPException(status_code=400, detail="A solicitação não pode mais ser editada")

        old_data: Dict[str, Any] = row.get("dados_missao") or {}
        new_data = mission_data.dados_missao.model_dump(mode="json")
        changes = [
            self._historico_entry(
                user, "edicao",
                campo=key,
                valor_anterior=old_data.get(key),
                valor_novo=value
            )
            for key, value in new_data.items()
            if old_data.get(key) != value
        ]
        if not changes:
            raise HTTPException(status_code=400, detail="Nenhuma alteração detectada")

        historico = list(row.get("historico") or []) + changes
        mission = self._save(mission_id, {"dados_missao": new_data, "historico": historico})
        logger.info(f"Mission {mission_id} edited by {user['id']} ({len(changes)} field(s))")
        return mission

    def add_comment(self, mission_id: str, comentario: str, user: dict, is_manager: bool) -> MissionResponse:
        if not comentario or not comentario.strip():
            raise HTTPException(status_code=400, detail="Comentário vazio")
        row = self._get_row(mission_id)
        self._ensure_owner_or_manager(row, user, is_manager)
        historico = list(row.get("historico") or [])
        historico.append(self._historico_entry(user, "comentario", comentario=comentario.strip()))
        return self._save(mission_id, {"historico": historico})

    def _change_status(self, row: dict, target: MissionStatus, user: dict, extra: Optional[dict] = None) -> MissionResponse:
        ensure_transition(MISSION_TRANSITIONS, row["status"], target)
        historico = list(row.get("historico") or [])
        historico.append(self._historico_entry(
            user, "status",
            campo="status",
            valor_anterior=row["status"],
            valor_novo=target.value,
            comentario=(extra or {}).get("parecer_sop")
        ))
        mission = self._save(row["id"], {"status": target.value, "historico": historico, **(extra or {})})
        logger.info(f"Mission {row['id']} {row['status']} -> {target.value}")
        return mission

    def submit_mission(self, mission_id: str, user: dict) -> MissionResponse:
        row = self._get_row(mission_id)
        if row["solicitante_id"] != user["id"]:
            raise HTTPException(status_code=403, detail="Somente o solicitante pode enviar o rascunho")
        return self._change_status(row, MissionStatus.PENDENTE, user)

    def decide_mission(self, mission_id: str, decision: MissionStatus, parecer: Optional[str], user: dict) -> MissionResponse:
        if decision == MissionStatus.REJEITADA and not (parecer and parecer.strip()):
            raise HTTPException(status_code=400, detail="O parecer é obrigatório para rejeitar a missão")
        row = self._get_row(mission_id)
        extra = {"parecer_sop": parecer.strip()} if parecer and parecer.strip() else None
        return self._change_status(row, decision, user, extra)

    def build_order_draft(self, row: dict) -> MissionOrderCreate:
        """Mission order prefilled from the request"""
        dados = row.get("dados_missao") or {}
        responsavel = dados.get("responsavel") or {}
        alimentacao = dados.get("alimentacao") or {}
        description = (
            f"SOLICITAÇÃO DE MISSÃO ID: {row['id']}\n"
            f"Responsável: {responsavel.get('nome') or 'O próprio'}\n"
            f"Efetivo Solicitado: {dados.get('efetivo', '')}\n"
            f"Viaturas: {format_viaturas(dados.get('viaturas'))}"
        )
        return MissionOrderCreate(
            date=dados["data"],
            is_internal=True,
            mission=dados["tipo_missao"],
            location=dados["local"],
            description=description,
            requester=f"{dados.get('posto', '')} {dados.get('nome_guerra', '')}".strip(),
            transport=_has_vehicles(dados.get("viaturas")),
            food=any(bool(v) for v in alimentacao.values()),
            personnel=[],
            schedule=[{
                "id": str(uuid.uuid4()),
                "activity": dados["tipo_missao"],
                "location": dados["local"],
                "date": dados["data"],
                "time": dados.get("inicio"),
            }],
            mission_commander_id=row["solicitante_id"],
            mission_request_id=row["id"],
        )

    def generate_order(self, mission_id: str, user: dict) -> MissionOrderResponse:
        """Create the OMIS for an approved request and close the request as FINALIZADA"""
        row = self._get_row(mission_id)
        ensure_transition(MISSION_TRANSITIONS, row["status"], MissionStatus.FINALIZADA)
        order = MissionOrderService(self.supabase).create_order(self.build_order_draft(row), user)
        self._change_status(row, MissionStatus.FINALIZADA, user, {"mission_order_id": order.id})
        return order

    def statistics(self) -> MissionStatistics:
        try:
            orders = self.supabase.table("mission_orders").select("*").execute().data or []
            requests = self.supabase.table("missoes_gsd").select("*").execute().data or []
            commander_ids = sorted({o["mission_commander_id"] for o in orders if o.get("mission_commander_id")})
            commanders = {}
            if commander_ids:
                rows = self.supabase.table("users")\
                    .select("id, rank, war_name, name")\
                    .in_("id", commander_ids)\
                    .execute().data or []
                commanders = {row["id"]: signer_label(row) for row in rows}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        orders_by_status = Counter(o.get("status") for o in orders)
        by_category = Counter(o.get("mission") or "Outros" for o in orders)
        # Drafts stay out of the requester ranking
        submitted = [r for r in requests if r.get("status") != MissionStatus.RASCUNHO.value]
        by_requester = Counter(
            f"{(r.get('dados_missao') or {}).get('posto') or ''} "
            f"{(r.get('dados_missao') or {}).get('nome_guerra') or 'Desconhecido'}".strip()
            for r in submitted
        )
        by_commander = Counter(
            commanders.get(o["mission_commander_id"], o["mission_commander_id"])
            for o in orders if o.get("mission_commander_id")
        )
        requests_by_status = Counter(r.get("status") for r in requests)
        return MissionStatistics(
            total_orders=len(orders),
            active_orders=sum(orders_by_status[s] for s in ACTIVE_ORDER_STATUSES),
            completed_orders=orders_by_status[OrderStatus.CONCLUIDA.value],
            awaiting_signature=orders_by_status[OrderStatus.AGUARDANDO_ASSINATURA.value],
            orders_by_status={status.value: orders_by_status.get(status.value, 0) for status in OrderStatus},
            orders_by_category=[CountItem(name=n, count=c) for n, c in by_category.most_common()],
            requests_by_status={status.value: requests_by_status.get(status.value, 0) for status in MissionStatus},
            top_requesters=[CountItem(name=n, count=c) for n, c in by_requester.most_common(TOP_N)],
            top_commanders=[CountItem(name=n, count=c) for n, c in by_commander.most_common(TOP_N)],
        )
