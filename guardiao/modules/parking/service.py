from supabase import Client
from guardiao.core.transitions import ensure_transition
from guardiao.modules.parking.schemas import (
    ParkingRequestCreate, ParkingRequestCreated, ParkingRequestResponse, ParkingDecision,
    ParkingStatistics, ParkingStatus, CountItem, PARKING_TRANSITIONS, DOCUMENT_KINDS
)
from guardiao.modules.parking.storage import ParkingDocumentStorage
from typing import List, Optional, Dict
from fastapi import HTTPException, UploadFile
from collections import Counter
from datetime import date, datetime
import logging
import os
import secrets
import string

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def document_file_name(kind: str, filename: str) -> str:
    """identity_1718000000000_k3j9x2.pdf"""
    extension = os.path.splitext(filename or "")[1].lstrip(".").lower()
    timestamp = int(datetime.utcnow().timestamp() * 1000)
    suffix = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"{kind}_{timestamp}_{suffix}.{extension}"


class ParkingService:
    def __init__(self, supabase: Client, storage: Optional[ParkingDocumentStorage] = None):
        self.supabase = supabase
        self.storage = storage or ParkingDocumentStorage(supabase)

    async def _upload_documents(self, files: Dict[str, UploadFile]) -> Dict[str, str]:
        """Upload every document; on failure the ones already stored are removed"""
        for field in DOCUMENT_KINDS:
            upload = files.get(field)
            if upload is None or not upload.filename:
                raise HTTPException(status_code=400, detail=f"Documento obrigatório: {field}")
            extension = os.path.splitext(upload.filename)[1].lstrip(".").lower()
            if extension not in ALLOWED_EXTENSIONS:
                raise HTTPException(
                    status_code=400,
                    detail=f"Formato de arquivo não permitido para {field} (use PDF, JPG ou PNG)"
                )

        urls: Dict[str, str] = {}
        stored: List[str] = []
        try:
            for field, kind in DOCUMENT_KINDS.items():
                upload = files[field]
                content = await upload.read()
                if not content:
                    raise HTTPException(status_code=400, detail=f"Arquivo vazio: {field}")
                key = document_file_name(kind, upload.filename)
                extension = key.rsplit(".", 1)[1]
                urls[field] = self.storage.upload(content, key, ALLOWED_EXTENSIONS[extension])
                stored.append(key)
                logger.info(f"Parking document stored: {key}")
        except HTTPException:
            self._discard(stored)
            raise
        except Exception as e:
            logger.error(f"Parking document upload failed: {str(e)}")
            self._discard(stored)
            raise HTTPException(status_code=500, detail=f"Failed to upload document: {str(e)}")
        return urls

    def _discard(self, keys: List[str]) -> None:
        for key in keys:
            self.storage.delete(key)

    async def create_request(self, request_data: ParkingRequestCreate, files: Dict[str, UploadFile]) -> ParkingRequestCreated:
        """Store the documents and register a Pendente request; returns the protocol number"""
        urls = await self._upload_documents(files)
        try:
            result = self.supabase.table("parking_requests").insert({
                "user_id": None,
                "nome_completo": request_data.nome,
                "posto_graduacao": request_data.posto,
                "forca": request_data.forca,
                "tipo_pessoa": request_data.tipo,
                "om": request_data.om,
                "telefone": request_data.telefone,
                "email": str(request_data.email),
                "identidade": request_data.identidade,
                "ext_marca_modelo": request_data.marca_modelo,
                "ext_placa": request_data.placa,
                "ext_cor": request_data.cor,
                "inicio": request_data.inicio.isoformat(),
                "termino": request_data.termino.isoformat(),
                "observacao": request_data.obs,
                "identidade_url": urls["identidade"],
                "cnh_url": urls["cnh"],
                "crlv_url": urls["crlv"],
                "status": ParkingStatus.PENDENTE.value,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create parking request")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        row = result.data[0]
        logger.info(f"Parking request {row.get('numero_autorizacao')} registered for plate {request_data.placa}")
        return ParkingRequestCreated(
            id=row["id"],
            numero_autorizacao=row.get("numero_autorizacao"),
            status=row["status"]
        )

    def list_requests(self, status: Optional[str] = None) -> List[ParkingRequestResponse]:
        try:
            query = self.supabase.table("parking_requests").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
            return [ParkingRequestResponse(**row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _get_row(self, request_id: str) -> dict:
        try:
            result = self.supabase.table("parking_requests")\
                .select("*")\
                .eq("id", request_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Parking request not found")
        return result.data[0]

    def get_request(self, request_id: str) -> ParkingRequestResponse:
        return ParkingRequestResponse(**self._get_row(request_id))

    def decide(self, request_id: str, decision: ParkingDecision, user: dict) -> ParkingRequestResponse:
        row = self._get_row(request_id)
        ensure_transition(PARKING_TRANSITIONS, row["status"], decision.status)
        changes = {
            "status": decision.status.value,
            "decidido_por": user["id"],
            "decidido_em": datetime.utcnow().isoformat(),
            "updated_at": datetime.utcnow().isoformat(),
        }
        if decision.observacao:
            changes["observacao"] = decision.observacao
        result = self.supabase.table("parking_requests")\
            .update(changes)\
            .eq("id", request_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Parking request not found")
        logger.info(f"Parking request {request_id} {row['status']} -> {decision.status.value} by {user['id']}")
        return ParkingRequestResponse(**result.data[0])

    def statistics(self, today: Optional[date] = None) -> ParkingStatistics:
        """
        Access-control panel counters. An authorization is active today when it is
        approved and today falls in [inicio, termino).
        """
        today_iso = (today or date.today()).isoformat()
        try:
            rows = self.supabase.table("parking_requests").select("*").execute().data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        by_status = Counter(row.get("status") for row in rows)
        by_type = Counter(row.get("tipo_pessoa") or "Não informado" for row in rows)
        by_om = Counter(row.get("om") or "—" for row in rows)
        active = [
            row for row in rows
            if row.get("status") == ParkingStatus.APROVADO.value
            and str(row.get("inicio")) <= today_iso < str(row.get("termino"))
        ]
        return ParkingStatistics(
            total=len(rows),
            by_status={status.value: by_status.get(status.value, 0) for status in ParkingStatus},
            by_person_type=dict(by_type),
            by_om=[CountItem(name=n, count=c) for n, c in by_om.most_common()],
            active_today=len(active),
        )
