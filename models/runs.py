from datetime import datetime

import discord
from beanie import Document
from pydantic import BaseModel, Field

from utils.enums import DisenchantTarget, RunStatus


class RunParticipant(BaseModel):
    """Embedded document for a participant of a run and their share weight."""

    player_id: str
    share_modifier: float = 1.0


class EntryFeeConfig(BaseModel):
    """The resources a run consumes and what each of them costs in WS."""

    essence_required: int = Field(default=2, ge=0)
    stone_required: int = Field(default=2, ge=0)
    essence_price_ws: float = Field(ge=0)
    stone_price_ws: float = Field(ge=0)

    def price_of(self, target: DisenchantTarget) -> float:
        """The WS value of one unit of essence or stone."""

        return self.essence_price_ws if target == DisenchantTarget.ESSENCE else self.stone_price_ws


class RunBase(EntryFeeConfig):
    """Fields shared by run records and documents."""

    run_number: int
    date: datetime = Field(default_factory=discord.utils.utcnow)
    host_id: str
    participants: list[RunParticipant] = Field(default_factory=list)
    total_entry_fee_ws: float = Field(default=0.0, ge=0)
    status: RunStatus = Field(default=RunStatus.OPEN)
    created_at: datetime = Field(default_factory=discord.utils.utcnow)

    def participant_ids(self) -> list[str]:
        return [participant.player_id for participant in self.participants]

    def is_participant(self, player_id: str) -> bool:
        return player_id in self.participant_ids()


class RunRecord(RunBase):
    """A stored run."""

    id: str


class Run(Document, RunBase):
    """Beanie document model for runs."""

    class Settings:
        name = "runs"
        indexes = [
            "run_number",
            "date",
            "status",
        ]
