from supabase import Client
from guardiao.config import settings
from guardiao.config.permissions_config import ADMIN_FUNCTION
from guardiao.core.security import require_valid_signature, signer_label
from guardiao.core.transitions import ensure_transition
from guardiao.modules.mission_orders.schemas import (
    MissionOrderCreate, MissionOrderUpdate, MissionOrderResponse, OrderStatus,
    ORDER_TRANSITIONS, GUARDED_TARGETS, LOCKED_STATUSES, DELETABLE_STATUSES
)
from guardiao.modules.mission_orders.notifications import NotificationService, MissionNotification
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging
import uuid

logger = logging.getLogger(__name__)


def can_sign_orders(user: dict) -> bool:
    """Only the CH-SOP (or an ADMIN_TOTAL militar) signs mission orders"""
    return user.get("sector") == "CH-SOP" or user.get("function_id") == ADMIN_FUNCTION


class MissionOrderService:
    def __init__(self, supabase: Client, notifier: Optional[NotificationService] = None):
        self.supabase = supabase
        self.notifier = notifier or NotificationService()

    def _get_row(self, order_id: str) -> dict:
        try:
            result = self.supabase.table("mission_orders")\
                .select("*")\
                .eq("id", order_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Mission order not found")
        return result.data[0]

    def _save(self, order_id: str, changes: dict) -> MissionOrderResponse:
        changes["updated_at"] = datetime.utcnow().isoformat()
        result = self.supabase.table("mission_orders")\
            .update(changes)\
            .eq("id", order_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Mission order not found")
        return MissionOrderResponse.from_row(result.data[0])

    @staticmethod
    def _timeline_entry(user: dict, text: str, entry_type: str) -> dict:
        return {
            "id": str(uuid.uuid4()),
            "timestamp": datetime.utcnow().isoformat(),
            "user_id": user.get("id"),
            "user_name": user.get("name") or "Sistema",
            "text": text,
            "type": entry_type,
        }

    def next_omis_number(self) -> str:
        """'{n}/GSD-SP' where n is 1 + orders created in the current calendar year"""
        year = datetime.utcnow().year
        # Exact count from PostgREST; the row payload is capped by max-rows
        result = self.supabase.table("mission_orders")\
            .select("id", count="exact")\
            .gte("created_at", f"{year}-01-01")\
            .limit(1)\
            .execute()
        return f"{(result.count or 0) + 1}/{settings.omis_suffix}"

    def create_order(self, order_data: MissionOrderCreate, user: dict) -> MissionOrderResponse:
        """Create a mission order in GERADA with the next OMIS number"""
        try:
            payload = order_data.model_dump(mode="json")
            omis_number = self.next_omis_number()
            insert_data = {
                **payload,
                "omis_number": omis_number,
                "created_by": user.get("name") or "Sistema",
                "created_by_id": user.get("id"),
                "status": OrderStatus.GERADA.value,
                "timeline": [],
                "mission_commander_id": payload.get("mission_commander_id") or user.get("id"),
            }
            result = self.supabase.table("mission_orders").insert(insert_data).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create mission order")
            logger.info(f"Mission order OMIS {omis_number} created by {user.get('id')}")
            return MissionOrderResponse.from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_orders(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[MissionOrderResponse]:
        try:
            query = self.supabase.table("mission_orders").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).limit(limit).offset(offset).execute()
            return [MissionOrderResponse.from_row(row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_order(self, order_id: str) -> MissionOrderResponse:
        return MissionOrderResponse.from_row(self._get_row(order_id))

    def update_order(self, order_id: str, order_data: MissionOrderUpdate) -> MissionOrderResponse:
        row = self._get_row(order_id)
        if row["status"] in LOCKED_STATUSES:
            raise HTTPException(status_code=400, detail=f"OMIS {row['status']} não pode ser editada")
        changes = order_data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=400, detail="Nenhuma alteração informada")
        return self._save(order_id, changes)

    def delete_order(self, order_id: str) -> None:
        row = self._get_row(order_id)
        if row["status"] not in DELETABLE_STATUSES:
            raise HTTPException(status_code=400, detail="Somente OMIS geradas ou canceladas podem ser excluídas")
        self.supabase.table("mission_orders").delete().eq("id", order_id).execute()
        logger.info(f"Mission order {order_id} deleted")

    def _transition(self, row: dict, target: OrderStatus, user: dict, text: str, entry_type: str = "STATUS_CHANGE", extra: Optional[dict] = None) -> MissionOrderResponse:
        ensure_transition(ORDER_TRANSITIONS, row["status"], target)
        timeline = list(row.get("timeline") or [])
        timeline.append(self._timeline_entry(user, text, entry_type))
        changes = {"status": target.value, "timeline": timeline, **(extra or {})}
        order = self._save(row["id"], changes)
        logger.info(f"Mission order {row['id']} {row['status']} -> {target.value}")
        return order

    def change_status(self, order_id: str, target: OrderStatus, user: dict, comment: Optional[str] = None) -> MissionOrderResponse:
        """Generic workflow step; signature, start and finish have their own operations"""
        if target in GUARDED_TARGETS:
            raise HTTPException(
                status_code=400,
                detail=f"O status {target.value} é aplicado pela assinatura, início ou término da missão"
            )
        row = self._get_row(order_id)
        text = f"Status alterado para {target.value}"
        if comment:
            text = f"{text}: {comment}"
        return self._transition(row, target, user, text)

    def sign_order(self, order_id: str, signer: dict, pin: str) -> MissionOrderResponse:
        if not can_sign_orders(signer):
            raise HTTPException(status_code=403, detail="Somente o CH-SOP pode assinar a OMIS")
        row = self._get_row(order_id)
        ensure_transition(ORDER_TRANSITIONS, row["status"], OrderStatus.PRONTA_PARA_EXECUCAO)
        require_valid_signature(signer, pin)
        signed_at = datetime.utcnow()
        signature = f"{signer_label(signer)} - {signed_at.strftime('%d/%m/%Y %H:%M')}"
        order = self._transition(
            row, OrderStatus.PRONTA_PARA_EXECUCAO, signer,
            f"OMIS assinada digitalmente por {signer_label(signer)}",
            extra={"ch_sop_signature": signature}
        )
        self.notify_assigned_personnel(order)
        return order

    def _is_commander_or_manager(self, row: dict, user: dict, is_manager: bool) -> None:
        if not is_manager and row.get("mission_commander_id") != user.get("id"):
            raise HTTPException(status_code=403, detail="Somente o comandante da missão pode executar esta ação")

    def start_mission(self, order_id: str, user: dict, is_manager: bool) -> MissionOrderResponse:
        row = self._get_row(order_id)
        self._is_commander_or_manager(row, user, is_manager)
        return self._transition(
            row, OrderStatus.EM_MISSAO, user, "Missão iniciada",
            extra={"start_time": datetime.utcnow().isoformat()}
        )

    def finish_mission(self, order_id: str, user: dict, report: str, is_manager: bool) -> MissionOrderResponse:
        if not report or not report.strip():
            raise HTTPException(status_code=400, detail="O relatório da missão é obrigatório")
        row = self._get_row(order_id)
        self._is_commander_or_manager(row, user, is_manager)
        return self._transition(
            row, OrderStatus.CONCLUIDA, user, report.strip(), entry_type="REPORT",
            extra={"end_time": datetime.utcnow().isoformat(), "mission_report": report.strip()}
        )

    def notify_assigned_personnel(self, order: MissionOrderResponse) -> int:
        """Notify every assigned militar with an e-mail. Returns how many notifications were sent."""
        sarams = [p.get("saram") for p in order.personnel if p.get("saram")]
        if not sarams:
            return 0
        try:
            result = self.supabase.table("users")\
                .select("id, name, rank, war_name, saram, email")\
                .in_("saram", sarams)\
                .execute()
            militares = result.data or []
            commander_name = None
            if order.mission_commander_id:
                commander = self.supabase.table("users")\
                    .select("name, rank, war_name")\
                    .eq("id", order.mission_commander_id)\
                    .limit(1)\
                    .execute()
                if commander.data:
                    commander_name = signer_label(commander.data[0])
        except Exception as e:
            logger.error(f"Error loading personnel for OMIS {order.omis_number}: {e}")
            return 0

        sent = 0
        for militar in militares:
            delivered = self.notifier.send_mission_assignment(MissionNotification(
                militar_email=militar.get("email"),
                militar_name=signer_label(militar),
                mission_title=order.mission,
                mission_date=order.date.strftime("%d/%m/%Y"),
                mission_location=order.location,
                omis_number=order.omis_number,
                commander_name=commander_name,
            ))
            if delivered:
                sent += 1
        logger.info(f"OMIS {order.omis_number}: {sent} notification(s) sent")
        return sent
