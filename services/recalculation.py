import logging
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from models.runs import RunParticipant
from models.sales import SaleRecord, SplitDetail

from .calculations import compute_sale_split, round2, split_details_from
from .store import LedgerStore

logger = logging.getLogger("tally")


class SaleRecalculation(BaseModel):
    """The outcome of replaying one sale against the run's entry fee."""

    sale_id: str
    cumulative_sales_before_ws: float
    remaining_unpaid_entry_fee_ws: float
    net_after_fees_ws: float
    split_details: list[SplitDetail]


class CascadeReport(BaseModel):
    """What a recalculation pass changed, and which runs it could not find."""

    recalculated: list[SaleRecord] = Field(default_factory=list)
    skipped_run_ids: list[str] = Field(default_factory=list)

    def merge(self, other: "CascadeReport") -> None:
        self.recalculated.extend(other.recalculated)
        self.skipped_run_ids.extend(other.skipped_run_ids)


def sort_sales_chronologically(sales: Iterable[SaleRecord]) -> list[SaleRecord]:
    """Order sales by sale date, oldest first, ties broken by creation time."""

    return sorted(sales, key=lambda sale: (sale.date, sale.created_at))


def replay_run_sales(
    total_entry_fee_ws: float, participants: Sequence[RunParticipant], sales: Iterable[SaleRecord]
) -> list[SaleRecalculation]:
    """
    Recompute every sale of a run from scratch, in chronological order.

    The entry fee is paid off by the earliest sales first: each sale sees whatever part of the
    fee the gross proceeds of the sales before it have not covered yet.

    Args:
        total_entry_fee_ws (float): The run's total entry fee.
        participants (Sequence[RunParticipant]): The run's current participants.
        sales (Iterable[SaleRecord]): All sales of the run, in any order.

    Returns:
        list[SaleRecalculation]: One entry per sale, in chronological order.
    """

    recalculations: list[SaleRecalculation] = []
    cumulative_sales_total = 0.0

    for sale in sort_sales_chronologically(sales):
        remaining = max(0.0, round2(total_entry_fee_ws - cumulative_sales_total))
        sale_split = compute_sale_split(sale.total_price_ws, remaining, participants)

        recalculations.append(
            SaleRecalculation(
                sale_id=sale.id,
                cumulative_sales_before_ws=cumulative_sales_total,
                remaining_unpaid_entry_fee_ws=remaining,
                net_after_fees_ws=sale_split.net_after_fees_ws,
                split_details=split_details_from(sale_split.split),
            )
        )

        # Gross, not net: the whole sale price counts towards the fee
        cumulative_sales_total = round2(cumulative_sales_total + sale.total_price_ws)

    return recalculations


def apply_recalculation(sale: SaleRecord, recalculation: SaleRecalculation) -> SaleRecord:
    """Return a copy of the sale carrying the recalculated net and a fresh, unpaid split."""

    return sale.model_copy(
        update={
            "net_after_fees_ws": recalculation.net_after_fees_ws,
            "split_details": [detail.model_copy() for detail in recalculation.split_details],
            "is_settled": all(detail.is_paid for detail in recalculation.split_details),
        }
    )


class RecalculationCascade:
    """
    Keeps stored sale splits consistent with the drops, participants and prices they depend on.

    Whenever one of those changes, every sale of each affected run is replayed in chronological
    order and rewritten, which also clears their payment flags. The writes are sequential and
    not transactional.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    async def recalculate_runs(self, run_ids: Iterable[str]) -> CascadeReport:
        """
        Recalculate all sales of the given runs.

        Runs that cannot be found are skipped and reported, the remaining runs are still processed.

        Args:
            run_ids (Iterable[str]): The affected run IDs. Duplicates are ignored.

        Returns:
            CascadeReport: The rewritten sales and the skipped run IDs.
        """

        report = CascadeReport()

        for run_id in dict.fromkeys(run_ids):
            run = await self.store.get_run(run_id)
            if not run:
                logger.warning(f"[CASCADE] Run Not Found, Skipping Recalculation: {run_id}")
                report.skipped_run_ids.append(run_id)
                continue

            sales = await self.store.find_sales_for_run(run_id)
            by_id = {sale.id: sale for sale in sales}

            for recalculation in replay_run_sales(run.total_entry_fee_ws, run.participants, sales):
                updated = apply_recalculation(by_id[recalculation.sale_id], recalculation)
                await self.store.save_sale(updated)
                report.recalculated.append(updated)

            logger.info(f"[CASCADE] Recalculated {len(sales)} Sale(s) For Run #{run.run_number} ({run_id})")

        return report

    async def after_drop_change(self, drop_id: str) -> CascadeReport:
        """Recalculate every run that has a sale referencing the drop."""

        sales = await self.store.find_sales_with_drop(drop_id)
        return await self.recalculate_runs(sale.run_id for sale in sales)

    async def after_sale_change(self, sale: SaleRecord) -> CascadeReport:
        """Recalculate the run a sale belongs to."""

        return await self.recalculate_runs([sale.run_id])

    async def after_run_change(self, run_id: str) -> CascadeReport:
        """Recalculate a run after its participants or prices changed."""

        return await self.recalculate_runs([run_id])
