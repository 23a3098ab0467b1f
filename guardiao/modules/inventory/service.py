from supabase import Client
from guardiao.modules.inventory.schemas import MaterialCreate, MaterialUpdate, MaterialResponse, MaterialStatus
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_material_row(self, material_id: str) -> dict:
        try:
            result = self.supabase.table("gestao_estoque")\
                .select("*")\
                .eq("id", material_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Material not found")
        return result.data[0]

    def get_material(self, material_id: str) -> MaterialResponse:
        return MaterialResponse(**self.get_material_row(material_id))

    def list_materials(
        self,
        available_only: bool = False,
        search: Optional[str] = None,
        tipo: Optional[str] = None
    ) -> List[MaterialResponse]:
        """Stock ordered by material name; available_only keeps DISPONIVEL items with units on the shelf"""
        try:
            query = self.supabase.table("gestao_estoque").select("*")
            if available_only:
                query = query.eq("status", MaterialStatus.DISPONIVEL.value).gt("qtdisponivel", 0)
            if tipo:
                query = query.eq("tipo_de_material", tipo)
            result = query.order("material").execute()
            rows = result.data or []
            if search:
                term = search.strip().lower()
                rows = [r for r in rows if term in (r.get("material") or "").lower()]
            return [MaterialResponse(**row) for row in rows]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_material(self, material_data: MaterialCreate) -> MaterialResponse:
        try:
            insert_data = material_data.model_dump(mode="json")
            insert_data["material"] = insert_data["material"].strip().upper()
            result = self.supabase.table("gestao_estoque").insert(insert_data).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create material")
            logger.info(f"Material {insert_data['material']} added to stock")
            return MaterialResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_material(self, material_id: str, material_data: MaterialUpdate) -> MaterialResponse:
        try:
            update_data = material_data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
            if "material" in update_data:
                update_data["material"] = update_data["material"].strip().upper()
            update_data["updated_at"] = datetime.utcnow().isoformat()
            result = self.supabase.table("gestao_estoque")\
                .update(update_data)\
                .eq("id", material_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Material not found")
            return MaterialResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_material(self, material_id: str) -> None:
        self.get_material_row(material_id)
        open_loans = self.supabase.table("movimentacao_cautela")\
            .select("id")\
            .eq("id_material", material_id)\
            .in_("status", ["Em Uso", "Pendente Devolução"])\
            .execute()
        if open_loans.data:
            raise HTTPException(status_code=409, detail="Material com cautelas em aberto não pode ser excluído")
        self.supabase.table("gestao_estoque").delete().eq("id", material_id).execute()
        logger.info(f"Material {material_id} removed from stock")

    def adjust_available(self, material_id: str, delta: int) -> dict:
        """Add delta to qtdisponivel; 409 when stock would go negative"""
        row = self.get_material_row(material_id)
        new_quantity = (row.get("qtdisponivel") or 0) + delta
        if new_quantity < 0:
            raise HTTPException(
                status_code=409,
                detail=f"Estoque insuficiente de {row['material']} (disponível: {row.get('qtdisponivel') or 0})"
            )
        self.supabase.table("gestao_estoque")\
            .update({"qtdisponivel": new_quantity, "updated_at": datetime.utcnow().isoformat()})\
            .eq("id", material_id)\
            .execute()
        return {**row, "qtdisponivel": new_quantity}

    def register_loss(self, material_id: str, quantity: int) -> None:
        """Loss of loaned units: saida grows by the quantity"""
        row = self.get_material_row(material_id)
        self.supabase.table("gestao_estoque")\
            .update({"saida": (row.get("saida") or 0) + quantity, "updated_at": datetime.utcnow().isoformat()})\
            .eq("id", material_id)\
            .execute()
        logger.info(f"Loss of {quantity} unit(s) of material {material_id} registered")
