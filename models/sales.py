from datetime import datetime

import discord
from beanie import Document
from pydantic import BaseModel, Field


class SplitDetail(BaseModel):
    """Embedded document for one participant's cut of a sale."""

    player_id: str
    # Negative when the unpaid entry fee exceeded the sale price
    amount_ws: float
    is_paid: bool = False


class SaleBase(BaseModel):
    """Fields shared by sale records and documents."""

    run_id: str
    drop_ids: list[str] = Field(default_factory=list)
    total_price_ws: float = Field(ge=0)
    buyer: str
    date: datetime = Field(default_factory=discord.utils.utcnow)
    net_after_fees_ws: float = 0.0
    split_details: list[SplitDetail] = Field(default_factory=list)
    is_settled: bool = False
    created_at: datetime = Field(default_factory=discord.utils.utcnow)

    def refresh_settled(self) -> None:
        """Re-derive the settled flag from the split entries."""

        self.is_settled = all(detail.is_paid for detail in self.split_details)


class SaleRecord(SaleBase):
    """A stored sale."""

    id: str


class Sale(Document, SaleBase):
    """Beanie document model for sales."""

    class Settings:
        name = "sales"
        indexes = [
            "run_id",
            "drop_ids",
            "date",
            "split_details.player_id",
        ]
