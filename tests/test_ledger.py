import pytest

from conftest import day
from models import RunParticipant
from services import InvalidInputError, NotFoundError
from utils.enums import DisenchantTarget, DropStatus, RunStatus


async def setup_run(ledger, *names: str, essence_price=25.0, stone_price=25.0):
    """Register players and start a run hosted by the first of them. The default entry fee is 100 WS."""

    players = [await ledger.create_player(name) for name in names or ("Ayla", "Bram")]
    run = await ledger.create_run(
        players[0].id,
        [RunParticipant(player_id=player.id) for player in players],
        essence_price_ws=essence_price,
        stone_price_ws=stone_price,
    )
    return run, players


async def add_drops(ledger, run, owner, count: int) -> list:
    return [await ledger.add_drop(run.id, owner.id, "Polearm", 3, 0) for _ in range(count)]


# Players


@pytest.mark.asyncio
async def test_create_player_rejects_duplicate_names(ledger, store):
    await ledger.create_player("Ayla", discord_id="111")

    with pytest.raises(InvalidInputError):
        await ledger.create_player("  ayla ")
    with pytest.raises(InvalidInputError):
        await ledger.create_player("Someone", discord_id="111")
    with pytest.raises(InvalidInputError):
        await ledger.create_player("   ")
    with pytest.raises(InvalidInputError):
        await ledger.create_player("Cut", default_cut_percent=120)

    assert len(store.players) == 1


@pytest.mark.asyncio
async def test_find_player_by_discord_id(ledger):
    player = await ledger.create_player("Ayla", discord_id="111")

    assert (await ledger.find_player_by_discord_id("111")).id == player.id
    with pytest.raises(NotFoundError):
        await ledger.find_player_by_discord_id("222")


# Runs


@pytest.mark.asyncio
async def test_create_run_numbers_runs_and_computes_fee(ledger):
    first, players = await setup_run(ledger)
    second = await ledger.create_run(
        players[1].id,
        [RunParticipant(player_id=players[1].id)],
        essence_price_ws=10,
        stone_price_ws=2.5,
        essence_required=3,
        stone_required=4,
    )

    assert first.run_number == 1
    assert first.total_entry_fee_ws == 100
    assert first.status == RunStatus.OPEN
    assert second.run_number == 2
    assert second.total_entry_fee_ws == 40


@pytest.mark.asyncio
async def test_create_run_validates_before_writing(ledger, store):
    player = await ledger.create_player("Ayla")
    writes = store.writes

    with pytest.raises(InvalidInputError):
        await ledger.create_run(player.id, [], essence_price_ws=-1, stone_price_ws=5)
    with pytest.raises(InvalidInputError):
        await ledger.create_run(
            player.id,
            [RunParticipant(player_id=player.id), RunParticipant(player_id=player.id)],
            essence_price_ws=1,
            stone_price_ws=1,
        )
    with pytest.raises(InvalidInputError):
        await ledger.create_run(
            player.id, [RunParticipant(player_id=player.id, share_modifier=0)], essence_price_ws=1, stone_price_ws=1
        )
    with pytest.raises(NotFoundError):
        await ledger.create_run(player.id, [RunParticipant(player_id="ghost")], essence_price_ws=1, stone_price_ws=1)
    with pytest.raises(NotFoundError):
        await ledger.create_run("ghost", [], essence_price_ws=1, stone_price_ws=1)

    assert store.writes == writes
    assert store.runs == {}


@pytest.mark.asyncio
async def test_update_run_prices_recalculate_sales(ledger):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 1)
    sale, _ = await ledger.create_sale(run.id, [drops[0].id], 150, "Merchant")
    assert sale.net_after_fees_ws == 50

    run, report = await ledger.update_run(run.id, essence_price_ws=10, stone_price_ws=10)

    assert run.total_entry_fee_ws == 40
    assert [s.net_after_fees_ws for s in report.recalculated] == [110]
    assert [d.amount_ws for d in report.recalculated[0].split_details] == [55, 55]


@pytest.mark.asyncio
async def test_update_run_status_does_not_recalculate(ledger):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 1)
    await ledger.create_sale(run.id, [drops[0].id], 150, "Merchant")

    run, report = await ledger.update_run(run.id, status=RunStatus.SETTLED)

    assert run.status == RunStatus.SETTLED
    assert report.recalculated == []

    with pytest.raises(InvalidInputError):
        await ledger.update_run(run.id, status="archived")


@pytest.mark.asyncio
async def test_settled_run_locks_participants_and_prices(ledger, store):
    run, (ayla, bram) = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, ayla, 1)
    sale, _ = await ledger.create_sale(run.id, [drop.id], 300, "Merchant")
    await ledger.update_run(run.id, status=RunStatus.SETTLED)
    writes = store.writes

    with pytest.raises(InvalidInputError, match="settled"):
        await ledger.update_run(run.id, essence_price_ws=10)
    with pytest.raises(InvalidInputError, match="settled"):
        await ledger.update_run(run.id, participants=[RunParticipant(player_id=ayla.id)])
    with pytest.raises(InvalidInputError, match="settled"):
        await ledger.update_run(run.id, stone_required=1, status=RunStatus.SETTLED)

    assert store.writes == writes
    assert (await ledger.get_run(run.id)).total_entry_fee_ws == 100
    assert [d.amount_ws for d in (await ledger.get_sale(sale.id)).split_details] == [100, 100]

    run, report = await ledger.update_run(run.id, essence_price_ws=10, status=RunStatus.OPEN)
    assert run.status == RunStatus.OPEN
    assert run.total_entry_fee_ws == 70
    assert len(report.recalculated) == 1


@pytest.mark.asyncio
async def test_delete_run_removes_drops_and_sales(ledger, store):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 2)
    await ledger.create_sale(run.id, [drops[0].id], 10, "Merchant")

    await ledger.delete_run(run.id)

    assert store.runs == {}
    assert store.drops == {}
    assert store.sales == {}
    with pytest.raises(NotFoundError):
        await ledger.get_run(run.id)


# Drops


@pytest.mark.asyncio
async def test_add_drop_validation(ledger, store):
    run, players = await setup_run(ledger)
    outsider = await ledger.create_player("Outsider")
    writes = store.writes

    with pytest.raises(InvalidInputError):
        await ledger.add_drop(run.id, outsider.id, "Polearm", 0, 0)
    with pytest.raises(InvalidInputError):
        await ledger.add_drop(run.id, players[0].id, "Trebuchet", 0, 0)
    with pytest.raises(InvalidInputError):
        await ledger.add_drop(run.id, players[0].id, "Polearm", 6, 0)
    with pytest.raises(InvalidInputError):
        await ledger.add_drop(run.id, players[0].id, "Polearm", 0, -2)

    assert store.writes == writes

    await ledger.update_run(run.id, status=RunStatus.SETTLED)
    with pytest.raises(InvalidInputError):
        await ledger.add_drop(run.id, players[0].id, "Polearm", 0, 0)


@pytest.mark.asyncio
async def test_disenchant_rules(ledger):
    run, players = await setup_run(ledger)
    kept, sold = await add_drops(ledger, run, players[0], 2)
    await ledger.create_sale(run.id, [sold.id], 10, "Merchant")

    drop = await ledger.disenchant_drop(kept.id, "stone")
    assert drop.status == DropStatus.DISENCHANTED
    assert drop.disenchanted_into == DisenchantTarget.STONE

    with pytest.raises(InvalidInputError, match="already disenchanted"):
        await ledger.disenchant_drop(kept.id, "essence")
    with pytest.raises(InvalidInputError, match="sold"):
        await ledger.disenchant_drop(sold.id, "essence")
    with pytest.raises(InvalidInputError):
        await ledger.disenchant_drop(sold.id, "gold")


@pytest.mark.asyncio
async def test_correct_drop_cascades_to_its_sale(ledger, store):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 2)
    sale, _ = await ledger.create_sale(run.id, [d.id for d in drops], 150, "Merchant")
    await ledger.set_run_splits_paid(run.id)

    drop, report = await ledger.correct_drop(drops[0].id, main_roll=-2, owner_id=players[1].id)

    assert drop.main_roll == -2
    assert drop.owner_id == players[1].id
    assert [s.id for s in report.recalculated] == [sale.id]

    stored = await ledger.get_sale(sale.id)
    assert not stored.is_settled
    assert all(not d.is_paid for d in stored.split_details)


@pytest.mark.asyncio
async def test_correct_drop_out_of_sold_releases_it(ledger):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 2)
    sale, _ = await ledger.create_sale(run.id, [d.id for d in drops], 150, "Merchant")

    drop, report = await ledger.correct_drop(drops[0].id, status=DropStatus.UNSOLD)

    assert drop.status == DropStatus.UNSOLD
    assert drop.sale_id is None
    assert (await ledger.get_sale(sale.id)).drop_ids == [drops[1].id]
    assert len(report.recalculated) == 1


@pytest.mark.asyncio
async def test_correct_drop_cannot_mark_sold_or_disenchanted(ledger):
    run, players = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, players[0], 1)

    with pytest.raises(InvalidInputError):
        await ledger.correct_drop(drop.id, status="sold")
    with pytest.raises(InvalidInputError):
        await ledger.correct_drop(drop.id, status="disenchanted")
    with pytest.raises(InvalidInputError):
        await ledger.correct_drop(drop.id, status="lost")

    listed, report = await ledger.correct_drop(drop.id, status="listed")
    assert listed.status == DropStatus.LISTED
    assert report.recalculated == []


# Sales


@pytest.mark.asyncio
async def test_create_sale_splits_against_unpaid_fee(ledger):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 3)

    first, report = await ledger.create_sale(run.id, [drops[0].id], 40, "Merchant", date=day(1))
    second, _ = await ledger.create_sale(run.id, [drops[1].id], 70, "Merchant", date=day(2))
    third, _ = await ledger.create_sale(run.id, [drops[2].id], 30, "Merchant", date=day(3))

    assert report.recalculated == []
    assert [s.net_after_fees_ws for s in (first, second, third)] == [-60, 10, 30]
    assert [d.amount_ws for d in first.split_details] == [-30, -30]
    assert not first.is_settled

    sold = await ledger.get_drop(drops[0].id)
    assert sold.status == DropStatus.SOLD
    assert sold.sale_id == first.id


@pytest.mark.asyncio
async def test_backdated_sale_recalculates_run(ledger):
    run, players = await setup_run(ledger)
    drops = await add_drops(ledger, run, players[0], 3)

    later, _ = await ledger.create_sale(run.id, [drops[0].id], 40, "Merchant", date=day(2))
    latest, _ = await ledger.create_sale(run.id, [drops[1].id], 70, "Merchant", date=day(3))
    await ledger.set_run_splits_paid(run.id)

    earliest, report = await ledger.create_sale(run.id, [drops[2].id], 30, "Merchant", date=day(1))

    assert earliest.net_after_fees_ws == -70
    assert len(report.recalculated) == 3
    assert (await ledger.get_sale(later.id)).net_after_fees_ws == -30
    assert (await ledger.get_sale(latest.id)).net_after_fees_ws == 40
    stored = [await ledger.get_sale(s.id) for s in (later, latest)]
    assert all(not s.is_settled for s in stored)


@pytest.mark.asyncio
async def test_create_sale_validation_writes_nothing(ledger, store):
    run, players = await setup_run(ledger)
    other_run, (cato,) = await setup_run(ledger, "Cato")
    drops = await add_drops(ledger, run, players[0], 2)
    (foreign,) = await add_drops(ledger, other_run, cato, 1)
    await ledger.disenchant_drop(drops[1].id, "essence")
    writes = store.writes

    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [], 10, "Merchant")
    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [drops[0].id], -1, "Merchant")
    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [drops[0].id], 10, "  ")
    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [drops[0].id, drops[0].id], 10, "Merchant")
    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [drops[1].id], 10, "Merchant")
    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [foreign.id], 10, "Merchant")
    with pytest.raises(NotFoundError):
        await ledger.create_sale(run.id, ["drop-missing"], 10, "Merchant")

    assert store.writes == writes
    assert store.sales == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("price", [float("inf"), float("-inf"), float("nan")])
async def test_non_finite_prices_are_rejected(ledger, store, price):
    run, players = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, players[0], 1)
    writes = store.writes

    with pytest.raises(InvalidInputError):
        await ledger.create_sale(run.id, [drop.id], price, "Merchant")
    with pytest.raises(InvalidInputError):
        await ledger.create_run(players[0].id, [], essence_price_ws=price, stone_price_ws=5)
    with pytest.raises(InvalidInputError):
        await ledger.update_run(run.id, stone_price_ws=price)

    assert store.writes == writes
    assert store.sales == {}
    assert (await ledger.get_drop(drop.id)).status == DropStatus.UNSOLD


@pytest.mark.asyncio
async def test_sold_drop_cannot_be_sold_again(ledger):
    run, players = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, players[0], 1)
    await ledger.create_sale(run.id, [drop.id], 10, "Merchant")

    with pytest.raises(InvalidInputError, match="already been sold"):
        await ledger.create_sale(run.id, [drop.id], 10, "Someone Else")


@pytest.mark.asyncio
async def test_update_sale_releases_removed_drops(ledger):
    run, players = await setup_run(ledger)
    first, second, third = await add_drops(ledger, run, players[0], 3)
    sale, _ = await ledger.create_sale(run.id, [first.id, second.id], 150, "Merchant")

    sale, report = await ledger.update_sale(sale.id, total_price_ws=200, drop_ids=[second.id, third.id])

    assert sale.net_after_fees_ws == 100
    assert sale.drop_ids == [second.id, third.id]
    assert len(report.recalculated) == 1
    assert (await ledger.get_drop(first.id)).status == DropStatus.UNSOLD
    assert (await ledger.get_drop(third.id)).sale_id == sale.id


# Payments


@pytest.mark.asyncio
async def test_player_paid_settles_sales_once_everyone_is_paid(ledger):
    run, (ayla, bram) = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, ayla, 1)
    sale, _ = await ledger.create_sale(run.id, [drop.id], 300, "Merchant")

    owed = dict((p.id, amount) for p, amount in await ledger.list_players_with_owed())
    assert owed == {ayla.id: 100, bram.id: 100}

    changed, paid_ws = await ledger.set_player_splits_paid(ayla.id)
    assert [s.id for s in changed] == [sale.id]
    assert paid_ws == 100
    assert not (await ledger.get_sale(sale.id)).is_settled
    assert ayla.id in (await ledger.get_drop(drop.id)).paid_for_players

    await ledger.set_player_splits_paid(bram.id)
    assert (await ledger.get_sale(sale.id)).is_settled

    assert await ledger.set_player_splits_paid(bram.id) == ([], 0)
    owed = dict((p.id, amount) for p, amount in await ledger.list_players_with_owed())
    assert owed == {ayla.id: 0, bram.id: 0}


@pytest.mark.asyncio
async def test_run_paid_flags_can_be_reverted(ledger):
    run, players = await setup_run(ledger)
    (drop,) = await add_drops(ledger, run, players[0], 1)
    sale, _ = await ledger.create_sale(run.id, [drop.id], 300, "Merchant")

    await ledger.set_run_splits_paid(run.id)
    assert (await ledger.get_sale(sale.id)).is_settled

    await ledger.set_run_splits_paid(run.id, paid=False)
    stored = await ledger.get_sale(sale.id)
    assert not stored.is_settled
    assert all(not d.is_paid for d in stored.split_details)


@pytest.mark.asyncio
async def test_run_paid_records_players_on_sold_drops(ledger):
    run, (ayla, bram) = await setup_run(ledger)
    sold, unsold = await add_drops(ledger, run, ayla, 2)
    await ledger.create_sale(run.id, [sold.id], 300, "Merchant")

    await ledger.set_run_splits_paid(run.id)
    assert (await ledger.get_drop(sold.id)).paid_for_players == [ayla.id, bram.id]
    assert (await ledger.get_drop(unsold.id)).paid_for_players == []

    await ledger.set_run_splits_paid(run.id)
    assert (await ledger.get_drop(sold.id)).paid_for_players == [ayla.id, bram.id]

    await ledger.set_run_splits_paid(run.id, paid=False)
    assert (await ledger.get_drop(sold.id)).paid_for_players == []


@pytest.mark.asyncio
async def test_player_paid_reports_only_the_splits_it_flipped(ledger, store):
    run, (ayla, bram) = await setup_run(ledger)
    first, second = await add_drops(ledger, run, ayla, 2)
    await ledger.create_sale(run.id, [first.id], 300, "Merchant", date=day(1))
    await ledger.create_sale(run.id, [second.id], 60, "Merchant", date=day(2))
    await ledger.set_player_splits_paid(ayla.id)

    (paid_sale,) = [s for s in await ledger.list_sales() if s.total_price_ws == 300]
    paid_sale.split_details[0].is_paid = False
    await store.save_sale(paid_sale)

    changed, paid_ws = await ledger.set_player_splits_paid(ayla.id)

    assert [s.id for s in changed] == [paid_sale.id]
    assert paid_ws == 100
