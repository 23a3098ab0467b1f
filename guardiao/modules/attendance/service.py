"""
Daily roll call. A sheet covers one (date, sector, call type); it can be
retaken while unsigned and is frozen once the responsible signs it with
their PIN. After signing, status changes go through justifications, which
keep the original status for audit.
"""
from supabase import Client
from guardiao.config.constants import PRONTOS, BAIXAS, EXTERNOS, INDISPONIVEIS, CALL_TYPES
from guardiao.core.security import require_valid_signature, signer_label
from guardiao.modules.attendance.schemas import (
    AttendanceSheetCreate, AttendanceSheetResponse, AttendanceRecordResponse,
    JustificationCreate, JustificationResponse, SheetStatus,
    WeeklyGrid, WeeklyRow, ForceMap, SectorForce
)
from typing import List, Optional, Dict, Tuple
from fastapi import HTTPException
from datetime import date, datetime, timedelta
import logging

logger = logging.getLogger(__name__)


def week_bounds(day: date) -> Tuple[date, date]:
    """Monday and Sunday of the week containing day"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def _bucket_counts(statuses: List[str]) -> Dict[str, int]:
    return {
        "prontos": sum(1 for s in statuses if s in PRONTOS),
        "baixas": sum(1 for s in statuses if s in BAIXAS),
        "externos": sum(1 for s in statuses if s in EXTERNOS),
        "indisponiveis": sum(1 for s in statuses if s in INDISPONIVEIS),
    }


class AttendanceService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_sheet_row(self, attendance_id: str) -> dict:
        try:
            result = self.supabase.table("daily_attendance")\
                .select("*")\
                .eq("id", attendance_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Chamada não encontrada")
        return result.data[0]

    def _records_for(self, attendance_ids: List[str]) -> Dict[str, List[dict]]:
        if not attendance_ids:
            return {}
        result = self.supabase.table("attendance_records")\
            .select("*")\
            .in_("attendance_id", attendance_ids)\
            .execute()
        grouped: Dict[str, List[dict]] = {}
        for record in result.data or []:
            grouped.setdefault(record["attendance_id"], []).append(record)
        return grouped

    def _to_response(self, row: dict, records: List[dict]) -> AttendanceSheetResponse:
        return AttendanceSheetResponse(
            **row,
            records=[AttendanceRecordResponse(**r) for r in records]
        )

    def _find_sheet(self, day: str, sector: str, call_type: str) -> Optional[dict]:
        result = self.supabase.table("daily_attendance")\
            .select("*")\
            .eq("date", day)\
            .eq("sector", sector)\
            .eq("call_type", call_type)\
            .order("created_at", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def save_sheet(self, sheet_data: AttendanceSheetCreate, user: dict) -> AttendanceSheetResponse:
        """Create or retake the sheet for (date, sector, call type). Signed sheets cannot be replaced."""
        day = sheet_data.date.isoformat()
        militar_ids = [r.militar_id for r in sheet_data.records]
        if len(set(militar_ids)) != len(militar_ids):
            raise HTTPException(status_code=400, detail="Militar repetido na chamada")

        try:
            existing = self._find_sheet(day, sheet_data.sector, sheet_data.call_type)
            if existing and existing.get("status") == SheetStatus.ASSINADA.value:
                raise HTTPException(status_code=409, detail="Chamada já assinada; use justificativas para alterações")

            users_result = self.supabase.table("users")\
                .select("id, name, war_name, rank, saram")\
                .in_("id", militar_ids)\
                .execute()
            militares = {u["id"]: u for u in users_result.data or []}
            unknown = [m for m in militar_ids if m not in militares]
            if unknown:
                raise HTTPException(status_code=400, detail=f"Militares desconhecidos: {', '.join(unknown)}")

            header = {
                "date": day,
                "sector": sheet_data.sector,
                "call_type": sheet_data.call_type,
                "responsible": sheet_data.responsible or signer_label(user),
                "status": SheetStatus.RASCUNHO.value,
                "created_by": user.get("id"),
                "updated_at": datetime.utcnow().isoformat(),
            }
            if existing:
                attendance_id = existing["id"]
                previous = self.supabase.table("attendance_records")\
                    .select("id")\
                    .eq("attendance_id", attendance_id)\
                    .execute()
                previous_ids = [r["id"] for r in previous.data or []]
            else:
                header_result = self.supabase.table("daily_attendance").insert(header).execute()
                if not header_result.data:
                    raise HTTPException(status_code=500, detail="Failed to create attendance sheet")
                attendance_id = header_result.data[0]["id"]
                previous_ids = []

            timestamp = datetime.utcnow().isoformat()
            records = [
                {
                    "attendance_id": attendance_id,
                    "militar_id": r.militar_id,
                    "militar_name": militares[r.militar_id].get("war_name") or militares[r.militar_id].get("name"),
                    "militar_rank": militares[r.militar_id].get("rank"),
                    "saram": militares[r.militar_id].get("saram"),
                    "status": r.status,
                    "timestamp": timestamp,
                }
                for r in sheet_data.records
            ]
            # A retake keeps the previous records until the new ones are stored
            records_result = self.supabase.table("attendance_records").insert(records).execute()
            if previous_ids:
                self.supabase.table("attendance_records")\
                    .delete()\
                    .in_("id", previous_ids)\
                    .execute()
            if existing:
                header_result = self.supabase.table("daily_attendance")\
                    .update(header)\
                    .eq("id", attendance_id)\
                    .execute()
            logger.info(
                f"Attendance {sheet_data.sector} {day} {sheet_data.call_type} saved by {user.get('id')} "
                f"({len(records)} record(s))"
            )
            return self._to_response(header_result.data[0], records_result.data or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_sheets(self, day: Optional[date] = None, sector: Optional[str] = None) -> List[AttendanceSheetResponse]:
        try:
            query = self.supabase.table("daily_attendance").select("*")
            if day:
                query = query.eq("date", day.isoformat())
            if sector:
                query = query.eq("sector", sector)
            rows = query.order("date", desc=True).execute().data or []
            records = self._records_for([r["id"] for r in rows])
            return [self._to_response(row, records.get(row["id"], [])) for row in rows]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_sheet(self, attendance_id: str) -> AttendanceSheetResponse:
        row = self._get_sheet_row(attendance_id)
        return self._to_response(row, self._records_for([attendance_id]).get(attendance_id, []))

    def sign_sheet(self, attendance_id: str, signer: dict, pin: str) -> AttendanceSheetResponse:
        row = self._get_sheet_row(attendance_id)
        if row.get("status") == SheetStatus.ASSINADA.value:
            raise HTTPException(status_code=409, detail="Chamada já assinada")
        require_valid_signature(signer, pin)
        result = self.supabase.table("daily_attendance")\
            .update({
                "status": SheetStatus.ASSINADA.value,
                "signed_by": signer_label(signer),
                "signed_at": datetime.utcnow().isoformat(),
            })\
            .eq("id", attendance_id)\
            .execute()
        logger.info(f"Attendance {attendance_id} signed by {signer['id']}")
        return self._to_response(result.data[0], self._records_for([attendance_id]).get(attendance_id, []))

    def add_justification(self, attendance_id: str, data: JustificationCreate, user: dict) -> JustificationResponse:
        if not data.justification or not data.justification.strip():
            raise HTTPException(status_code=400, detail="A justificativa é obrigatória")
        sheet = self._get_sheet_row(attendance_id)
        if sheet.get("status") != SheetStatus.ASSINADA.value:
            raise HTTPException(status_code=400, detail="Justificativas só se aplicam a chamadas assinadas")
        record_result = self.supabase.table("attendance_records")\
            .select("*")\
            .eq("attendance_id", attendance_id)\
            .eq("militar_id", data.militar_id)\
            .limit(1)\
            .execute()
        if not record_result.data:
            raise HTTPException(status_code=404, detail="Militar não consta nesta chamada")
        record = record_result.data[0]

        self.supabase.table("attendance_records")\
            .update({"status": data.new_status})\
            .eq("id", record["id"])\
            .execute()
        justification = {
            "attendance_id": attendance_id,
            "militar_id": data.militar_id,
            "militar_name": record.get("militar_name"),
            "militar_rank": record.get("militar_rank"),
            "saram": record.get("saram"),
            "original_status": record["status"],
            "new_status": data.new_status,
            "justification": data.justification.strip(),
            "performed_by": signer_label(user),
            "timestamp": datetime.utcnow().isoformat(),
            "sector": sheet["sector"],
            "date": sheet["date"],
            "call_type": sheet["call_type"],
        }
        result = self.supabase.table("absence_justifications").insert(justification).execute()
        logger.info(
            f"Justification on attendance {attendance_id} for {data.militar_id}: "
            f"{record['status']} -> {data.new_status}"
        )
        return JustificationResponse(**(result.data[0] if result.data else justification))

    def list_justifications(self, day: Optional[date] = None, sector: Optional[str] = None) -> List[JustificationResponse]:
        try:
            query = self.supabase.table("absence_justifications").select("*")
            if day:
                query = query.eq("date", day.isoformat())
            if sector:
                query = query.eq("sector", sector)
            result = query.order("timestamp", desc=True).execute()
            return [JustificationResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def weekly_grid(self, sector: str, week_start: date) -> WeeklyGrid:
        """Monday-Sunday grid per militar, day and call type, from the latest sheet of each (date, call)"""
        monday, sunday = week_bounds(week_start)
        try:
            sheets = self.supabase.table("daily_attendance")\
                .select("*")\
                .eq("sector", sector)\
                .gte("date", monday.isoformat())\
                .lte("date", sunday.isoformat())\
                .order("created_at")\
                .execute().data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        latest: Dict[tuple, dict] = {}
        for sheet in sheets:
            latest[(sheet["date"], sheet["call_type"])] = sheet
        records = self._records_for([s["id"] for s in latest.values()])

        rows: Dict[str, WeeklyRow] = {}
        for (day, call_type), sheet in sorted(latest.items()):
            for record in records.get(sheet["id"], []):
                row = rows.setdefault(record["militar_id"], WeeklyRow(
                    militar_id=record["militar_id"],
                    militar_name=record.get("militar_name"),
                    militar_rank=record.get("militar_rank"),
                    saram=record.get("saram"),
                ))
                row.days.setdefault(day, {})[call_type] = record["status"]

        return WeeklyGrid(
            sector=sector,
            week_start=monday,
            week_end=sunday,
            dates=[monday + timedelta(days=i) for i in range(7)],
            rows=list(rows.values()),
        )

    def force_map(self, day: date) -> ForceMap:
        """Force readiness for a day from the latest sheet of each sector"""
        try:
            personnel = self.supabase.table("users")\
                .select("id, sector")\
                .eq("approved", True)\
                .execute().data or []
            sheets = self.supabase.table("daily_attendance")\
                .select("*")\
                .eq("date", day.isoformat())\
                .order("created_at")\
                .execute().data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        call_order = list(CALL_TYPES)
        latest_by_sector: Dict[str, dict] = {}
        for sheet in sorted(sheets, key=lambda s: (call_order.index(s["call_type"]) if s["call_type"] in call_order else -1)):
            latest_by_sector[sheet["sector"]] = sheet
        records = self._records_for([s["id"] for s in latest_by_sector.values()])

        sectors = []
        all_statuses: List[str] = []
        for sector, sheet in sorted(latest_by_sector.items()):
            statuses = [r["status"] for r in records.get(sheet["id"], [])]
            all_statuses.extend(statuses)
            sectors.append(SectorForce(
                sector=sector,
                call_type=sheet["call_type"],
                attendance_id=sheet["id"],
                signed=sheet.get("status") == SheetStatus.ASSINADA.value,
                total=len(statuses),
                **_bucket_counts(statuses),
            ))

        staffed_sectors = {p.get("sector") for p in personnel if p.get("sector")}
        return ForceMap(
            date=day,
            total_efetivo=len(personnel),
            sectors=sectors,
            missing_sectors=sorted(staffed_sectors - set(latest_by_sector)),
            **_bucket_counts(all_statuses),
        )
