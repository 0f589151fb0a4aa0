from datetime import datetime

import discord
from beanie import Document
from pydantic import BaseModel, Field

from utils.enums import DisenchantTarget, DropStatus, WeaponType


class DropBase(BaseModel):
    """Fields shared by drop records and documents."""

    run_id: str
    owner_id: str
    weapon_type: WeaponType
    main_roll: int = Field(ge=-5, le=5)
    secondary_roll: int = Field(ge=-1, le=1)
    notes: str | None = None
    status: DropStatus = Field(default=DropStatus.UNSOLD)
    sale_id: str | None = None
    disenchanted_into: DisenchantTarget | None = None
    paid_for_players: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=discord.utils.utcnow)


class DropRecord(DropBase):
    """A stored drop."""

    id: str


class Drop(Document, DropBase):
    """Beanie document model for weapon drops."""

    class Settings:
        name = "drops"
        indexes = [
            "run_id",
            "owner_id",
            "sale_id",
            "status",
        ]
