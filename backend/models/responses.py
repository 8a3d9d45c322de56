from pydantic import BaseModel

from models.schemas.decision import ApplicationDecision


class DecideResponse(BaseModel):
    decisions: list[ApplicationDecision] = []
    filtered_out: int = 0


class GateResponse(BaseModel):
    vacancy_id: str
    allowed: bool
    reason: str
