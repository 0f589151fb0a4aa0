from collections import defaultdict
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from models import DropRecord, PlayerRecord, PlayerRef, RunRecord, SaleRecord, player_ref
from utils.enums import DropStatus

from .calculations import compute_split_by_shares, round2


class RunTotals(BaseModel):
    total_entry_fee_ws: float
    total_sales_ws: float
    total_net_after_fees_ws: float
    total_disenchanted_ws: float
    fees_covered_by_sales_ws: float
    unpaid_entry_fee_ws: float


class ParticipantSummary(BaseModel):
    player: PlayerRef
    share_modifier: float
    # Display-only re-split of the run's net, sale splits are authoritative
    amount_ws: float
    owed_ws: float

    @property
    def player_id(self) -> str:
        return self.player.id


class PaymentStatus(BaseModel):
    total_owed_ws: float
    splits_fully_paid: bool


class RunSummary(BaseModel):
    run: RunRecord
    drops: list[DropRecord]
    sales: list[SaleRecord]
    totals: RunTotals
    per_participant: list[ParticipantSummary]
    payment_status: PaymentStatus


def owed_by_player(sales: Iterable[SaleRecord]) -> dict[str, float]:
    """
    Sum the unpaid split amounts of each player.

    Args:
        sales (Iterable[SaleRecord]): The sales to look through.

    Returns:
        dict[str, float]: Rounded unpaid totals keyed by player ID.
    """

    owed: dict[str, float] = defaultdict(float)
    for sale in sales:
        for detail in sale.split_details:
            if not detail.is_paid:
                owed[detail.player_id] += detail.amount_ws

    return {player_id: round2(amount) for player_id, amount in owed.items()}


def disenchanted_value_ws(run: RunRecord, drops: Iterable[DropRecord]) -> float:
    """What the run's disenchanted drops are worth at the run's resource prices."""

    total = 0.0
    for drop in drops:
        if drop.status == DropStatus.DISENCHANTED and drop.disenchanted_into:
            total += run.price_of(drop.disenchanted_into)
    return round2(total)


def summarize_run(
    run: RunRecord,
    drops: list[DropRecord],
    sales: list[SaleRecord],
    players: Mapping[str, PlayerRecord],
    all_sales: Iterable[SaleRecord],
) -> RunSummary:
    """
    Summarise what a run has earned, what of its entry fee is still unpaid, and who is owed what.

    Args:
        run (RunRecord): The run to summarise.
        drops (list[DropRecord]): The run's drops.
        sales (list[SaleRecord]): The run's sales.
        players (Mapping[str, PlayerRecord]): Known players keyed by ID, used to expand references.
        all_sales (Iterable[SaleRecord]): Every sale in the ledger, for the participants' owed totals.

    Returns:
        RunSummary: The summary.
    """

    total_sales_ws = round2(sum(sale.total_price_ws for sale in sales))
    total_net_after_fees_ws = round2(sum(sale.net_after_fees_ws for sale in sales))
    total_disenchanted_ws = disenchanted_value_ws(run, drops)

    fees_covered_by_sales_ws = round2(total_sales_ws - total_net_after_fees_ws)
    unpaid_entry_fee_ws = max(0.0, round2(run.total_entry_fee_ws - fees_covered_by_sales_ws - total_disenchanted_ws))

    totals = RunTotals(
        total_entry_fee_ws=run.total_entry_fee_ws,
        total_sales_ws=total_sales_ws,
        total_net_after_fees_ws=total_net_after_fees_ws,
        total_disenchanted_ws=total_disenchanted_ws,
        fees_covered_by_sales_ws=fees_covered_by_sales_ws,
        unpaid_entry_fee_ws=unpaid_entry_fee_ws,
    )

    owed_globally = owed_by_player(all_sales)
    split = compute_split_by_shares(total_net_after_fees_ws, run.participants)
    modifiers = {participant.player_id: participant.share_modifier for participant in run.participants}

    per_participant = [
        ParticipantSummary(
            player=player_ref(amount.player_id, players),
            share_modifier=modifiers[amount.player_id],
            amount_ws=amount.amount_ws,
            owed_ws=owed_globally.get(amount.player_id, 0.0),
        )
        for amount in split.per_participant
    ]

    total_owed_ws = round2(sum(owed_by_player(sales).values()))
    payment_status = PaymentStatus(
        total_owed_ws=total_owed_ws,
        splits_fully_paid=total_owed_ws == 0 and bool(per_participant),
    )

    return RunSummary(
        run=run,
        drops=drops,
        sales=sales,
        totals=totals,
        per_participant=per_participant,
        payment_status=payment_status,
    )
