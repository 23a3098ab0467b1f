"""
Cautela workflow. A militar requests material, the SAP-03 approves it and
hands it over once the militar signs with their PIN; the return is signed the
same way. Stock leaves the shelf on release and comes back on return; a loss
registered while the material is in the militar's hands is written off as saida.
"""
from supabase import Client
from guardiao.core.security import require_valid_signature, signer_label
from guardiao.core.transitions import ensure_transition
from guardiao.modules.inventory.schemas import MaterialStatus
from guardiao.modules.inventory.service import InventoryService
from guardiao.modules.loans.schemas import (
    LoanCreate, LoanResponse, LoanStatus, DirectMovement, LoanStatistics, CountItem,
    LOAN_TRANSITIONS, LOAN_TABS, IN_HANDS
)
from guardiao.modules.users.service import UserService
from typing import List, Optional, Dict
from collections import Counter
from fastapi import HTTPException
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5
TOP_N = 5


def _now_label() -> str:
    return datetime.now().strftime("%d/%m/%Y %H:%M")


class LoanService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.inventory = InventoryService(supabase)
        self.users = UserService(supabase)

    def _get_row(self, loan_id: str) -> dict:
        try:
            result = self.supabase.table("movimentacao_cautela")\
                .select("*")\
                .eq("id", loan_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Cautela não encontrada")
        return result.data[0]

    def _save(self, loan_id: str, changes: dict) -> LoanResponse:
        changes["updated_at"] = datetime.utcnow().isoformat()
        result = self.supabase.table("movimentacao_cautela")\
            .update(changes)\
            .eq("id", loan_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Cautela não encontrada")
        return self._enrich(result.data)[0]

    def _enrich(self, rows: List[dict]) -> List[LoanResponse]:
        """Attach material (name, type, stock) and requester (rank, war name) to each row"""
        if not rows:
            return []
        material_ids = list({r["id_material"] for r in rows if r.get("id_material")})
        user_ids = list({r["id_usuario"] for r in rows if r.get("id_usuario")})
        materials: Dict[str, dict] = {}
        users: Dict[str, dict] = {}
        try:
            if material_ids:
                result = self.supabase.table("gestao_estoque")\
                    .select("id, material, tipo_de_material, qtdisponivel")\
                    .in_("id", material_ids)\
                    .execute()
                materials = {m["id"]: m for m in result.data or []}
            if user_ids:
                result = self.supabase.table("users")\
                    .select("id, rank, war_name, name, saram")\
                    .in_("id", user_ids)\
                    .execute()
                users = {
                    u["id"]: {"rank": u.get("rank"), "war_name": u.get("war_name") or u.get("name"), "saram": u.get("saram")}
                    for u in result.data or []
                }
        except Exception as e:
            logger.error(f"Error enriching cautelas: {e}")
        return [
            LoanResponse(
                **row,
                material=materials.get(row.get("id_material")),
                solicitante=users.get(row.get("id_usuario"))
            )
            for row in rows
        ]

    def _available_material(self, material_id: str, quantity: int) -> dict:
        material = self.inventory.get_material_row(material_id)
        if material.get("status") != MaterialStatus.DISPONIVEL.value:
            raise HTTPException(status_code=400, detail=f"Material {material['material']} indisponível ({material.get('status')})")
        if quantity > (material.get("qtdisponivel") or 0):
            raise HTTPException(
                status_code=409,
                detail=f"Quantidade solicitada maior que a disponível ({material.get('qtdisponivel') or 0})"
            )
        return material

    # Requests

    def request_loan(self, loan_data: LoanCreate, user: dict) -> LoanResponse:
        self._available_material(loan_data.id_material, loan_data.quantidade)
        try:
            result = self.supabase.table("movimentacao_cautela").insert({
                "id_material": loan_data.id_material,
                "id_usuario": user["id"],
                "quantidade": loan_data.quantidade,
                "observacao": loan_data.observacao,
                "status": LoanStatus.PENDENTE.value,
            }).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create cautela")
        logger.info(f"Cautela requested by {user['id']} for material {loan_data.id_material}")
        return self._enrich(result.data)[0]

    def list_user_loans(self, user_id: str) -> List[LoanResponse]:
        try:
            result = self.supabase.table("movimentacao_cautela")\
                .select("*")\
                .eq("id_usuario", user_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return self._enrich(result.data or [])

    def list_loans(self, tab: Optional[str] = None) -> List[LoanResponse]:
        if tab is not None and tab not in LOAN_TABS:
            raise HTTPException(status_code=400, detail=f"Aba inválida: {tab}")
        try:
            query = self.supabase.table("movimentacao_cautela").select("*")
            if tab:
                query = query.in_("status", LOAN_TABS[tab])
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return self._enrich(result.data or [])

    # Workflow

    def approve(self, loan_id: str, manager: dict) -> LoanResponse:
        row = self._get_row(loan_id)
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.APROVADO)
        loan = self._save(loan_id, {"status": LoanStatus.APROVADO.value, "autorizado_por": signer_label(manager)})
        logger.info(f"Cautela {loan_id} approved by {manager['id']}")
        return loan

    def await_confirmation(self, loan_id: str, manager: dict) -> LoanResponse:
        """Material separated; waiting for the militar to come and sign"""
        row = self._get_row(loan_id)
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.AGUARDANDO_CONFIRMACAO)
        return self._save(loan_id, {"status": LoanStatus.AGUARDANDO_CONFIRMACAO.value})

    def release(self, loan_id: str, manager: dict, pin: str) -> LoanResponse:
        """Hand the material over; the requester signs with their PIN"""
        row = self._get_row(loan_id)
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.EM_USO)
        requester = self.users.get_user_row(row["id_usuario"])
        require_valid_signature(requester, pin)
        self.inventory.adjust_available(row["id_material"], -(row.get("quantidade") or 1))
        loan = self._save(loan_id, {
            "status": LoanStatus.EM_USO.value,
            "entregue_por": signer_label(manager),
            "observacao": f"Retirada assinada digitalmente por {signer_label(requester)} em {_now_label()}",
        })
        logger.info(f"Cautela {loan_id} released to {requester['id']}")
        return loan

    def request_return(self, loan_id: str, user: dict) -> LoanResponse:
        row = self._get_row(loan_id)
        if row["id_usuario"] != user["id"]:
            raise HTTPException(status_code=403, detail="Somente o detentor da cautela pode solicitar a devolução")
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.PENDENTE_DEVOLUCAO)
        return self._save(loan_id, {"status": LoanStatus.PENDENTE_DEVOLUCAO.value})

    def confirm_return(self, loan_id: str, manager: dict, pin: str) -> LoanResponse:
        row = self._get_row(loan_id)
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.CONCLUIDO)
        requester = self.users.get_user_row(row["id_usuario"])
        require_valid_signature(requester, pin)
        self.inventory.adjust_available(row["id_material"], row.get("quantidade") or 1)
        loan = self._save(loan_id, {
            "status": LoanStatus.CONCLUIDO.value,
            "recebido_por": signer_label(manager),
            "observacao": f"Devolução assinada digitalmente por {signer_label(requester)} em {_now_label()}",
        })
        logger.info(f"Cautela {loan_id} returned by {requester['id']}")
        return loan

    def reject(self, loan_id: str, manager: dict, reason: str, loss: bool = False) -> LoanResponse:
        if not reason or not reason.strip():
            raise HTTPException(status_code=400, detail="Informe o motivo da rejeição")
        row = self._get_row(loan_id)
        ensure_transition(LOAN_TRANSITIONS, row["status"], LoanStatus.REJEITADO)
        quantidade = row.get("quantidade") or 1
        if row["status"] in IN_HANDS:
            # Released units are either written off or put back on the shelf
            if loss:
                self.inventory.register_loss(row["id_material"], quantidade)
            else:
                self.inventory.adjust_available(row["id_material"], quantidade)
        loan = self._save(loan_id, {"status": LoanStatus.REJEITADO.value, "observacao": reason.strip()})
        logger.info(f"Cautela {loan_id} rejected by {manager['id']} (loss={loss})")
        return loan

    # Direct movements at the counter

    def _direct_signer(self, movement: DirectMovement) -> dict:
        militar = self.users.get_user_row_by_saram(movement.saram)
        require_valid_signature(militar, movement.pin)
        return militar

    def direct_release(self, movement: DirectMovement, manager: dict) -> LoanResponse:
        militar = self._direct_signer(movement)
        self._available_material(movement.id_material, movement.quantidade)
        self.inventory.adjust_available(movement.id_material, -movement.quantidade)
        manager_name = signer_label(manager)
        result = self.supabase.table("movimentacao_cautela").insert({
            "id_material": movement.id_material,
            "id_usuario": militar["id"],
            "status": LoanStatus.EM_USO.value,
            "quantidade": movement.quantidade,
            "autorizado_por": manager_name,
            "entregue_por": manager_name,
            "observacao": f"Assinado digitalmente por {signer_label(militar)} em {_now_label()}",
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to register release")
        logger.info(f"Direct release of material {movement.id_material} to {militar['id']}")
        return self._enrich(result.data)[0]

    def direct_return(self, movement: DirectMovement, manager: dict) -> LoanResponse:
        militar = self._direct_signer(movement)
        self.inventory.get_material_row(movement.id_material)
        self.inventory.adjust_available(movement.id_material, movement.quantidade)
        manager_name = signer_label(manager)
        result = self.supabase.table("movimentacao_cautela").insert({
            "id_material": movement.id_material,
            "id_usuario": militar["id"],
            "status": LoanStatus.CONCLUIDO.value,
            "quantidade": movement.quantidade,
            "autorizado_por": manager_name,
            "entregue_por": manager_name,
            "recebido_por": manager_name,
            "observacao": f"Devolução Direta: Assinado digitalmente por {signer_label(militar)} em {_now_label()}",
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to register return")
        logger.info(f"Direct return of material {movement.id_material} by {militar['id']}")
        return self._enrich(result.data)[0]

    # Statistics

    def statistics(self, days: Optional[int] = None) -> LoanStatistics:
        """Material panel: stock health, loans by status and the most requested materials and militares"""
        try:
            inventory = self.supabase.table("gestao_estoque").select("*").execute().data or []
            query = self.supabase.table("movimentacao_cautela").select("*")
            if days:
                since = datetime.utcnow() - timedelta(days=days)
                query = query.gte("created_at", since.isoformat())
            loans = self._enrich(query.execute().data or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        by_status = Counter(loan.status for loan in loans)
        by_type = Counter((loan.material or {}).get("tipo_de_material") or "OUTROS" for loan in loans)
        by_material = Counter((loan.material or {}).get("material") or loan.id_material for loan in loans)
        by_user = Counter(
            f"{(loan.solicitante or {}).get('rank') or ''} {(loan.solicitante or {}).get('war_name') or 'Desconhecido'}".strip()
            for loan in loans
        )
        return LoanStatistics(
            total_items=len(inventory),
            low_stock=sum(1 for item in inventory if (item.get("qtdisponivel") or 0) < LOW_STOCK_THRESHOLD),
            total_loans=len(loans),
            active_loans=sum(loan.quantidade or 1 for loan in loans if loan.status == LoanStatus.EM_USO.value),
            by_status={status.value: by_status.get(status.value, 0) for status in LoanStatus},
            by_material_type=[CountItem(name=n, count=c) for n, c in by_type.most_common()],
            top_materials=[CountItem(name=n, count=c) for n, c in by_material.most_common(TOP_N)],
            top_users=[CountItem(name=n, count=c) for n, c in by_user.most_common(TOP_N)],
        )
