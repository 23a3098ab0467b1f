from pydantic import BaseModel
from typing import List

from guardiao.modules.missions.schemas import MissionResponse
from guardiao.modules.loans.schemas import LoanResponse


class PlanResponse(BaseModel):
    """Meu Plano: the caller's mission requests and cautelas"""
    missions: List[MissionResponse]
    loans: List[LoanResponse]
    open_missions: int
    open_loans: int
    loans_in_hands: int
