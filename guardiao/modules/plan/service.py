from supabase import Client
from guardiao.modules.missions.schemas import MissionStatus
from guardiao.modules.missions.service import MissionService
from guardiao.modules.loans.schemas import LoanStatus, IN_HANDS
from guardiao.modules.loans.service import LoanService
from guardiao.modules.plan.schemas import PlanResponse

CLOSED_MISSIONS = {MissionStatus.REJEITADA.value, MissionStatus.FINALIZADA.value}
CLOSED_LOANS = {LoanStatus.CONCLUIDO.value, LoanStatus.REJEITADO.value}


class PlanService:
    def __init__(self, supabase: Client):
        self.missions = MissionService(supabase)
        self.loans = LoanService(supabase)

    def get_plan(self, user: dict) -> PlanResponse:
        missions = self.missions.list_missions(solicitante_id=user["id"])
        loans = self.loans.list_user_loans(user["id"])
        return PlanResponse(
            missions=missions,
            loans=loans,
            open_missions=sum(1 for m in missions if m.status not in CLOSED_MISSIONS),
            open_loans=sum(1 for loan in loans if loan.status not in CLOSED_LOANS),
            loans_in_hands=sum(1 for loan in loans if loan.status in IN_HANDS),
        )
