from datetime import datetime

import discord
from beanie import Document
from pydantic import BaseModel, Field


class PlayerBase(BaseModel):
    """Fields shared by player records and documents."""

    name: str
    discord_id: str | None = None
    default_cut_percent: float | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
    created_at: datetime = Field(default_factory=discord.utils.utcnow)


class PlayerRecord(PlayerBase):
    """A stored player."""

    id: str


class Player(Document, PlayerBase):
    """Beanie document model for players."""

    class Settings:
        name = "players"
        indexes = [
            "name",
            "discord_id",
        ]
