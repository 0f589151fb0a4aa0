import pytest

from models import Expanded, IdRef, RunParticipant, RunRecord, SaleRecord, SplitDetail, display_name
from services.summary import owed_by_player, summarize_run


async def run_with_players(ledger):
    ayla = await ledger.create_player("Ayla")
    bram = await ledger.create_player("Bram")
    run = await ledger.create_run(
        ayla.id,
        [RunParticipant(player_id=ayla.id), RunParticipant(player_id=bram.id)],
        essence_price_ws=25,
        stone_price_ws=25,
    )
    return run, ayla, bram


@pytest.mark.asyncio
async def test_summary_of_empty_run(ledger):
    run, _, _ = await run_with_players(ledger)

    summary = await ledger.get_run_summary(run.id)

    assert summary.totals.total_sales_ws == 0
    assert summary.totals.unpaid_entry_fee_ws == 100
    assert [p.amount_ws for p in summary.per_participant] == [0, 0]
    assert summary.payment_status.total_owed_ws == 0
    assert summary.payment_status.splits_fully_paid


@pytest.mark.asyncio
async def test_disenchanted_drops_count_towards_entry_fee(ledger):
    run, ayla, _ = await run_with_players(ledger)
    drop = await ledger.add_drop(run.id, ayla.id, "Spear", 0, 0)
    await ledger.disenchant_drop(drop.id, "stone")

    summary = await ledger.get_run_summary(run.id)

    assert summary.totals.total_disenchanted_ws == 25
    assert summary.totals.unpaid_entry_fee_ws == 75


@pytest.mark.asyncio
async def test_summary_totals_and_split_preview(ledger):
    run, ayla, bram = await run_with_players(ledger)
    sold, melted, _ = [await ledger.add_drop(run.id, ayla.id, "Knuckle", 1, 1) for _ in range(3)]
    await ledger.create_sale(run.id, [sold.id], 150, "Merchant")
    await ledger.disenchant_drop(melted.id, "essence")

    summary = await ledger.get_run_summary(run.id)
    totals = summary.totals

    assert totals.total_entry_fee_ws == 100
    assert totals.total_sales_ws == 150
    assert totals.total_net_after_fees_ws == 50
    assert totals.total_disenchanted_ws == 25
    assert totals.fees_covered_by_sales_ws == 100
    assert totals.unpaid_entry_fee_ws == 0

    assert [p.player_id for p in summary.per_participant] == [ayla.id, bram.id]
    assert [display_name(p.player) for p in summary.per_participant] == ["Ayla", "Bram"]
    assert [p.amount_ws for p in summary.per_participant] == [25, 25]
    assert [p.owed_ws for p in summary.per_participant] == [25, 25]

    assert summary.payment_status.total_owed_ws == 50
    assert not summary.payment_status.splits_fully_paid

    await ledger.set_run_splits_paid(run.id)
    paid = await ledger.get_run_summary(run.id)
    assert paid.payment_status.splits_fully_paid
    assert [p.owed_ws for p in paid.per_participant] == [0, 0]


@pytest.mark.asyncio
async def test_owed_covers_all_runs_but_payment_status_only_this_one(ledger):
    first, ayla, bram = await run_with_players(ledger)
    second = await ledger.create_run(
        ayla.id, [RunParticipant(player_id=ayla.id)], essence_price_ws=0, stone_price_ws=0
    )
    first_drop = await ledger.add_drop(first.id, ayla.id, "Polearm", 0, 0)
    second_drop = await ledger.add_drop(second.id, ayla.id, "Polearm", 0, 0)
    await ledger.create_sale(first.id, [first_drop.id], 120, "Merchant")
    await ledger.create_sale(second.id, [second_drop.id], 30, "Merchant")

    summary = await ledger.get_run_summary(first.id)

    owed = {p.player_id: p.owed_ws for p in summary.per_participant}
    assert owed == {ayla.id: 40, bram.id: 10}
    assert summary.payment_status.total_owed_ws == 20


def test_unknown_participants_are_referenced_by_id():
    run = RunRecord(
        id="run-1",
        run_number=1,
        host_id="p1",
        participants=[RunParticipant(player_id="p1")],
        essence_price_ws=0,
        stone_price_ws=0,
    )

    summary = summarize_run(run, [], [], {}, [])

    (participant,) = summary.per_participant
    assert isinstance(participant.player, IdRef)
    assert not isinstance(participant.player, Expanded)
    assert display_name(participant.player) == "Unknown (p1)"


def test_owed_by_player_skips_paid_splits():
    sales = [
        SaleRecord(
            id="s1",
            run_id="r",
            total_price_ws=10,
            buyer="a",
            split_details=[SplitDetail(player_id="p1", amount_ws=3.34), SplitDetail(player_id="p2", amount_ws=3.33, is_paid=True)],
        ),
        SaleRecord(
            id="s2",
            run_id="r",
            total_price_ws=10,
            buyer="b",
            split_details=[SplitDetail(player_id="p1", amount_ws=-1.67), SplitDetail(player_id="p2", amount_ws=-1.66)],
        ),
    ]

    assert owed_by_player(sales) == {"p1": 1.67, "p2": -1.66}
    assert owed_by_player([]) == {}
