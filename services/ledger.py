import logging
import math
from collections.abc import Sequence
from datetime import datetime

from models import (
    DropBase,
    DropRecord,
    PlayerBase,
    PlayerRecord,
    RunBase,
    RunParticipant,
    RunRecord,
    SaleBase,
    SaleRecord,
)
from utils.enums import DisenchantTarget, DropStatus, RunStatus, WeaponType

from .calculations import compute_total_entry_fee_ws, round2
from .errors import InvalidInputError, NotFoundError
from .recalculation import (
    CascadeReport,
    RecalculationCascade,
    apply_recalculation,
    replay_run_sales,
    sort_sales_chronologically,
)
from .store import LedgerStore
from .summary import RunSummary, owed_by_player, summarize_run

logger = logging.getLogger("tally")

MAIN_ROLL_RANGE: tuple[int, int] = (-5, 5)
SECONDARY_ROLL_RANGE: tuple[int, int] = (-1, 1)


def _require_non_negative(value: float, field: str) -> None:
    if not math.isfinite(value):
        raise InvalidInputError(f"`{field}` must be a finite number")
    if value < 0:
        raise InvalidInputError(f"`{field}` must not be negative")


def _require_roll(value: int, bounds: tuple[int, int], field: str) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise InvalidInputError(f"`{field}` must be between `{low}` and `{high}`")


def _weapon_type(value: str | WeaponType) -> WeaponType:
    try:
        return WeaponType(value)
    except ValueError:
        raise InvalidInputError(f"`{value}` is not a known weapon type") from None


def _disenchant_target(value: str | DisenchantTarget | None) -> DisenchantTarget:
    try:
        return DisenchantTarget(value)
    except ValueError:
        raise InvalidInputError("Disenchant target must be `essence` or `stone`") from None


class LedgerService:
    """
    The operations the bot exposes on players, runs, drops and sales.

    Every operation validates its input completely before the first write, so a rejected request
    leaves nothing behind. Operations that invalidate stored splits hand over to the
    RecalculationCascade.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store
        self.cascade = RecalculationCascade(store)

    # Players

    async def get_player(self, player_id: str) -> PlayerRecord:
        player = await self.store.get_player(player_id)
        if not player:
            raise NotFoundError("Player", player_id)
        return player

    async def find_player_by_name(self, name: str) -> PlayerRecord:
        player = await self.store.find_player_by_name(name)
        if not player:
            raise NotFoundError("Player", name)
        return player

    async def find_player_by_discord_id(self, discord_id: str) -> PlayerRecord:
        player = await self.store.find_player_by_discord_id(discord_id)
        if not player:
            raise NotFoundError("Player for member", discord_id)
        return player

    async def create_player(
        self,
        name: str,
        discord_id: str | None = None,
        default_cut_percent: float | None = None,
        notes: str | None = None,
    ) -> PlayerRecord:
        """
        Register a new player.

        Args:
            name (str): Display name, unique regardless of case.
            discord_id (str | None): The Discord user the player belongs to, if any.
            default_cut_percent (float | None): Optional default cut between 0 and 100.
            notes (str | None): Free text.

        Returns:
            PlayerRecord: The created player.
        """

        name = name.strip() if name else ""
        if not name:
            raise InvalidInputError("A player name is required")

        if default_cut_percent is not None and not 0 <= default_cut_percent <= 100:
            raise InvalidInputError("`default_cut_percent` must be between `0` and `100`")

        if await self.store.find_player_by_name(name):
            raise InvalidInputError(f"A player named **{name}** already exists")

        if discord_id and await self.store.find_player_by_discord_id(discord_id):
            raise InvalidInputError(f"<@{discord_id}> is already linked to a player")

        player = await self.store.insert_player(
            PlayerBase(name=name, discord_id=discord_id, default_cut_percent=default_cut_percent, notes=notes)
        )
        logger.info(f"[LEDGER] Created Player: {player.name} ({player.id})")
        return player

    async def update_player(
        self,
        player_id: str,
        name: str | None = None,
        discord_id: str | None = None,
        default_cut_percent: float | None = None,
        notes: str | None = None,
    ) -> PlayerRecord:
        player = await self.get_player(player_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidInputError("A player name cannot be blank")

            existing = await self.store.find_player_by_name(name)
            if existing and existing.id != player.id:
                raise InvalidInputError(f"A player named **{name}** already exists")
            player.name = name

        if default_cut_percent is not None:
            if not 0 <= default_cut_percent <= 100:
                raise InvalidInputError("`default_cut_percent` must be between `0` and `100`")
            player.default_cut_percent = default_cut_percent

        if discord_id is not None:
            player.discord_id = discord_id
        if notes is not None:
            player.notes = notes

        await self.store.save_player(player)
        return player

    async def players_by_id(self) -> dict[str, PlayerRecord]:
        return {player.id: player for player in await self.store.list_players()}

    async def list_players_with_owed(self) -> list[tuple[PlayerRecord, float]]:
        """All players alongside the WS currently owed to them across every sale."""

        players = await self.store.list_players()
        owed = owed_by_player(await self.store.list_sales())
        return [(player, owed.get(player.id, 0.0)) for player in players]

    async def set_player_splits_paid(self, player_id: str) -> tuple[list[SaleRecord], float]:
        """
        Mark every unpaid split of a player as paid.

        Sales whose splits are now all paid become settled, and the player is recorded as paid on
        the drops of the affected sales.

        Args:
            player_id (str): The player who was paid out.

        Returns:
            tuple[list[SaleRecord], float]: The sales that changed and the WS paid out by this call.
        """

        player = await self.get_player(player_id)

        changed: list[SaleRecord] = []
        paid_ws = 0.0
        for sale in await self.store.find_sales_for_player(player.id):
            unpaid = [d for d in sale.split_details if d.player_id == player.id and not d.is_paid]
            if not unpaid:
                continue

            for detail in unpaid:
                detail.is_paid = True
                paid_ws += detail.amount_ws
            sale.refresh_settled()

            await self.store.save_sale(sale)
            changed.append(sale)

        drop_ids = dict.fromkeys(drop_id for sale in changed for drop_id in sale.drop_ids)
        for drop_id in drop_ids:
            drop = await self.store.get_drop(drop_id)
            if drop and player.id not in drop.paid_for_players:
                drop.paid_for_players.append(player.id)
                await self.store.save_drop(drop)

        logger.info(f"[LEDGER] Marked {len(changed)} Sale Split(s) Paid For Player: {player.name} ({player.id})")
        return changed, round2(paid_ws)

    # Runs

    async def get_run(self, run_id: str) -> RunRecord:
        run = await self.store.get_run(run_id)
        if not run:
            raise NotFoundError("Run", run_id)
        return run

    async def get_run_by_number(self, run_number: int) -> RunRecord:
        run = await self.store.get_run_by_number(run_number)
        if not run:
            raise NotFoundError("Run", f"#{run_number}")
        return run

    async def _validate_participants(self, participants: Sequence[RunParticipant]) -> list[RunParticipant]:
        seen: set[str] = set()
        for participant in participants:
            if participant.player_id in seen:
                raise InvalidInputError(f"Player `{participant.player_id}` is listed more than once")
            if participant.share_modifier <= 0:
                raise InvalidInputError("Share modifiers must be greater than `0`")
            await self.get_player(participant.player_id)
            seen.add(participant.player_id)

        return [participant.model_copy() for participant in participants]

    async def create_run(
        self,
        host_id: str,
        participants: Sequence[RunParticipant],
        essence_price_ws: float,
        stone_price_ws: float,
        essence_required: int = 2,
        stone_required: int = 2,
        date: datetime | None = None,
    ) -> RunRecord:
        """
        Start a new run with the next run number.

        Args:
            host_id (str): The hosting player.
            participants (Sequence[RunParticipant]): Initial participants, in split priority order.
            essence_price_ws (float): Unit price of essence.
            stone_price_ws (float): Unit price of stone.
            essence_required (int): Essence consumed by the run.
            stone_required (int): Stone consumed by the run.
            date (datetime | None): When the run took place, defaults to now.

        Returns:
            RunRecord: The created run with its entry fee computed.
        """

        await self.get_player(host_id)

        for value, field in (
            (essence_price_ws, "essence_price_ws"),
            (stone_price_ws, "stone_price_ws"),
            (essence_required, "essence_required"),
            (stone_required, "stone_required"),
        ):
            _require_non_negative(value, field)

        validated = await self._validate_participants(participants)

        data = RunBase(
            run_number=await self.store.last_run_number() + 1,
            host_id=host_id,
            participants=validated,
            essence_required=essence_required,
            stone_required=stone_required,
            essence_price_ws=essence_price_ws,
            stone_price_ws=stone_price_ws,
        )
        data.total_entry_fee_ws = compute_total_entry_fee_ws(data)
        if date is not None:
            data.date = date

        run = await self.store.insert_run(data)
        logger.info(f"[LEDGER] Created Run #{run.run_number} ({run.id}), Entry Fee: {run.total_entry_fee_ws} WS")
        return run

    async def update_run(
        self,
        run_id: str,
        *,
        date: datetime | None = None,
        host_id: str | None = None,
        participants: Sequence[RunParticipant] | None = None,
        essence_required: int | None = None,
        stone_required: int | None = None,
        essence_price_ws: float | None = None,
        stone_price_ws: float | None = None,
        status: RunStatus | None = None,
    ) -> tuple[RunRecord, CascadeReport]:
        """
        Change a run. Changing participants, counts or prices recalculates all of its sales.

        Returns:
            tuple[RunRecord, CascadeReport]: The updated run and what the recalculation rewrote.
        """

        run = await self.get_run(run_id)

        new_status = None
        if status is not None:
            try:
                new_status = RunStatus(status)
            except ValueError:
                raise InvalidInputError(f"`{status}` is not a valid run status") from None

        fee_fields = {
            "essence_required": essence_required,
            "stone_required": stone_required,
            "essence_price_ws": essence_price_ws,
            "stone_price_ws": stone_price_ws,
        }
        for field, value in fee_fields.items():
            if value is not None:
                _require_non_negative(value, field)

        if host_id is not None:
            await self.get_player(host_id)

        validated = await self._validate_participants(participants) if participants is not None else None

        edits_fee_or_participants = participants is not None or any(v is not None for v in fee_fields.values())
        if edits_fee_or_participants and (new_status or run.status) != RunStatus.OPEN:
            raise InvalidInputError(f"Run #{run.run_number} is settled, reopen it to change participants or prices")

        if date is not None:
            run.date = date
        if host_id is not None:
            run.host_id = host_id
        if new_status is not None:
            run.status = new_status
        if validated is not None:
            run.participants = validated

        fee_changed = False
        for field, value in fee_fields.items():
            if value is not None:
                setattr(run, field, value)
                fee_changed = True

        if fee_changed:
            run.total_entry_fee_ws = compute_total_entry_fee_ws(run)

        await self.store.save_run(run)

        report = CascadeReport()
        if fee_changed or validated is not None:
            report = await self.cascade.after_run_change(run.id)

        return run, report

    async def delete_run(self, run_id: str) -> RunRecord:
        """Delete a run together with all of its drops and sales."""

        run = await self.get_run(run_id)
        await self.store.delete_run(run.id)
        logger.info(f"[LEDGER] Deleted Run #{run.run_number} ({run.id})")
        return run

    async def set_run_splits_paid(self, run_id: str, paid: bool = True) -> list[SaleRecord]:
        """
        Mark every split of every sale in a run as paid, or unpaid again.

        The split players are added to, or removed from, the paid_for_players of the sold drops.
        """

        run = await self.get_run(run_id)

        sales = await self.store.find_sales_for_run(run.id)
        for sale in sales:
            for detail in sale.split_details:
                detail.is_paid = paid
            sale.is_settled = paid
            await self.store.save_sale(sale)

            split_players = list(dict.fromkeys(detail.player_id for detail in sale.split_details))
            for drop_id in sale.drop_ids:
                drop = await self.store.get_drop(drop_id)
                if not drop:
                    continue

                if paid:
                    drop.paid_for_players.extend(p for p in split_players if p not in drop.paid_for_players)
                else:
                    drop.paid_for_players = [p for p in drop.paid_for_players if p not in split_players]
                await self.store.save_drop(drop)

        logger.info(f"[LEDGER] Marked {len(sales)} Sale(s) Of Run #{run.run_number} As {'Paid' if paid else 'Unpaid'}")
        return sales

    async def get_run_summary(self, run_id: str) -> RunSummary:
        run = await self.get_run(run_id)

        drops = await self.store.find_drops_for_run(run.id)
        sales = sort_sales_chronologically(await self.store.find_sales_for_run(run.id))
        players = {player.id: player for player in await self.store.list_players()}

        return summarize_run(run, drops, sales, players, await self.store.list_sales())

    # Drops

    async def get_drop(self, drop_id: str) -> DropRecord:
        drop = await self.store.get_drop(drop_id)
        if not drop:
            raise NotFoundError("Drop", drop_id)
        return drop

    async def list_drops(self, run_id: str) -> list[DropRecord]:
        run = await self.get_run(run_id)
        return await self.store.find_drops_for_run(run.id)

    async def add_drop(
        self,
        run_id: str,
        owner_id: str,
        weapon_type: str | WeaponType,
        main_roll: int,
        secondary_roll: int,
        notes: str | None = None,
    ) -> DropRecord:
        """
        Log a drop for an open run.

        Args:
            run_id (str): The run the drop came from.
            owner_id (str): The participant holding the item.
            weapon_type (str | WeaponType): The kind of weapon.
            main_roll (int): Main roll, from -5 to 5.
            secondary_roll (int): Secondary roll, from -1 to 1.
            notes (str | None): Free text.

        Returns:
            DropRecord: The created drop.
        """

        run = await self.get_run(run_id)
        if run.status != RunStatus.OPEN:
            raise InvalidInputError(f"Run #{run.run_number} is settled and no longer accepts drops")

        if not owner_id:
            raise InvalidInputError("A drop owner is required")
        if not run.is_participant(owner_id):
            raise InvalidInputError("The owner must be a participant in this run")

        weapon = _weapon_type(weapon_type)
        _require_roll(main_roll, MAIN_ROLL_RANGE, "main_roll")
        _require_roll(secondary_roll, SECONDARY_ROLL_RANGE, "secondary_roll")

        drop = await self.store.insert_drop(
            DropBase(
                run_id=run.id,
                owner_id=owner_id,
                weapon_type=weapon,
                main_roll=main_roll,
                secondary_roll=secondary_roll,
                notes=notes.strip() if notes else None,
            )
        )
        logger.info(f"[LEDGER] Added Drop {drop.id} ({weapon.value}) To Run #{run.run_number}")
        return drop

    async def correct_drop(
        self,
        drop_id: str,
        *,
        owner_id: str | None = None,
        weapon_type: str | WeaponType | None = None,
        main_roll: int | None = None,
        secondary_roll: int | None = None,
        notes: str | None = None,
        status: str | DropStatus | None = None,
    ) -> tuple[DropRecord, CascadeReport]:
        """
        Correct a drop after the fact.

        A drop can only become sold through a sale and disenchanted through disenchant_drop. Moving
        it out of sold releases it from its sale, moving it out of disenchanted clears the target.
        If the drop was part of any sale, the runs of those sales are recalculated.

        Returns:
            tuple[DropRecord, CascadeReport]: The corrected drop and what the recalculation rewrote.
        """

        drop = await self.get_drop(drop_id)

        new_status = None
        if status is not None:
            try:
                new_status = DropStatus(status)
            except ValueError:
                raise InvalidInputError(f"`{status}` is not a valid drop status") from None

            if new_status != drop.status and new_status == DropStatus.SOLD:
                raise InvalidInputError("Drops are marked sold by recording a sale")
            if new_status != drop.status and new_status == DropStatus.DISENCHANTED:
                raise InvalidInputError("Use the disenchant action to disenchant a drop")

        if owner_id is not None:
            run = await self.get_run(drop.run_id)
            if not run.is_participant(owner_id):
                raise InvalidInputError("The owner must be a participant in this run")

        weapon = _weapon_type(weapon_type) if weapon_type is not None else None
        if main_roll is not None:
            _require_roll(main_roll, MAIN_ROLL_RANGE, "main_roll")
        if secondary_roll is not None:
            _require_roll(secondary_roll, SECONDARY_ROLL_RANGE, "secondary_roll")

        # Collected before any change so the sale the drop is leaving is still found
        linked_sales = await self.store.find_sales_with_drop(drop.id)

        if owner_id is not None:
            drop.owner_id = owner_id
        if weapon is not None:
            drop.weapon_type = weapon
        if main_roll is not None:
            drop.main_roll = main_roll
        if secondary_roll is not None:
            drop.secondary_roll = secondary_roll
        if notes is not None:
            drop.notes = notes.strip() or None

        if new_status is not None and new_status != drop.status:
            if drop.status == DropStatus.SOLD:
                drop.sale_id = None
                for sale in linked_sales:
                    sale.drop_ids = [linked for linked in sale.drop_ids if linked != drop.id]
                    await self.store.save_sale(sale)
            if drop.status == DropStatus.DISENCHANTED:
                drop.disenchanted_into = None
            drop.status = new_status

        await self.store.save_drop(drop)

        report = CascadeReport()
        if linked_sales:
            report = await self.cascade.recalculate_runs(sale.run_id for sale in linked_sales)

        return drop, report

    async def disenchant_drop(self, drop_id: str, target: str | DisenchantTarget) -> DropRecord:
        """
        Turn a drop into essence or stone instead of selling it.

        Args:
            drop_id (str): The drop to disenchant.
            target (str | DisenchantTarget): `essence` or `stone`.

        Returns:
            DropRecord: The disenchanted drop.
        """

        disenchant_into = _disenchant_target(target)
        drop = await self.get_drop(drop_id)

        if drop.status == DropStatus.SOLD:
            raise InvalidInputError("Cannot disenchant a sold item")
        if drop.status == DropStatus.DISENCHANTED:
            raise InvalidInputError("Item is already disenchanted")

        drop.status = DropStatus.DISENCHANTED
        drop.disenchanted_into = disenchant_into
        await self.store.save_drop(drop)

        logger.info(f"[LEDGER] Disenchanted Drop {drop.id} Into {disenchant_into.value}")
        return drop

    # Sales

    async def get_sale(self, sale_id: str) -> SaleRecord:
        sale = await self.store.get_sale(sale_id)
        if not sale:
            raise NotFoundError("Sale", sale_id)
        return sale

    async def list_sales(self) -> list[SaleRecord]:
        return sorted(await self.store.list_sales(), key=lambda sale: sale.date, reverse=True)

    async def _sellable_drops(self, run: RunRecord, drop_ids: Sequence[str], sale_id: str | None = None) -> list[DropRecord]:
        if not drop_ids:
            raise InvalidInputError("A sale needs at least one drop")
        if len(set(drop_ids)) != len(drop_ids):
            raise InvalidInputError("A drop can only be listed once per sale")

        drops: list[DropRecord] = []
        for drop_id in drop_ids:
            drop = await self.get_drop(drop_id)

            if drop.run_id != run.id:
                raise InvalidInputError(f"Drop `{drop.id}` does not belong to run #{run.run_number}")
            if drop.status == DropStatus.DISENCHANTED:
                raise InvalidInputError(f"Drop `{drop.id}` has been disenchanted")
            if drop.status == DropStatus.SOLD and drop.sale_id != sale_id:
                raise InvalidInputError(f"Drop `{drop.id}` has already been sold")

            drops.append(drop)

        return drops

    async def _mark_sold(self, drops: Sequence[DropRecord], sale_id: str) -> None:
        for drop in drops:
            drop.status = DropStatus.SOLD
            drop.sale_id = sale_id
            await self.store.save_drop(drop)

    async def create_sale(
        self,
        run_id: str,
        drop_ids: Sequence[str],
        total_price_ws: float,
        buyer: str,
        date: datetime | None = None,
    ) -> tuple[SaleRecord, CascadeReport]:
        """
        Record the sale of one or more drops of a run.

        The sale is split against whatever part of the entry fee the run's earlier sales have not
        covered. A sale dated before existing sales shifts the fee onto itself, so the whole run
        is recalculated in that case.

        Args:
            run_id (str): The run the drops belong to.
            drop_ids (Sequence[str]): The drops being sold.
            total_price_ws (float): Gross price, at least 0.
            buyer (str): Who bought the drops.
            date (datetime | None): When the sale happened, defaults to now.

        Returns:
            tuple[SaleRecord, CascadeReport]: The created sale and any other sales that were rewritten.
        """

        buyer = buyer.strip() if buyer else ""
        if not buyer:
            raise InvalidInputError("A buyer is required")
        if total_price_ws is None:
            raise InvalidInputError("A sale price is required")
        _require_non_negative(total_price_ws, "total_price_ws")

        run = await self.get_run(run_id)
        drops = await self._sellable_drops(run, list(drop_ids))

        data = SaleBase(run_id=run.id, drop_ids=[drop.id for drop in drops], total_price_ws=total_price_ws, buyer=buyer)
        if date is not None:
            data.date = date

        sale = await self.store.insert_sale(data)
        await self._mark_sold(drops, sale.id)

        sales = await self.store.find_sales_for_run(run.id)
        recalculations = replay_run_sales(run.total_entry_fee_ws, run.participants, sales)

        report = CascadeReport()
        if recalculations[-1].sale_id == sale.id:
            sale = apply_recalculation(sale, recalculations[-1])
            await self.store.save_sale(sale)
        else:
            report = await self.cascade.after_sale_change(sale)
            sale = next(updated for updated in report.recalculated if updated.id == sale.id)

        logger.info(
            f"[LEDGER] Recorded Sale {sale.id} For Run #{run.run_number}: {sale.total_price_ws} WS Gross, "
            f"{sale.net_after_fees_ws} WS Net"
        )
        return sale, report

    async def update_sale(
        self,
        sale_id: str,
        *,
        total_price_ws: float | None = None,
        buyer: str | None = None,
        drop_ids: Sequence[str] | None = None,
        date: datetime | None = None,
    ) -> tuple[SaleRecord, CascadeReport]:
        """
        Change a sale's price, buyer, date or drops and recalculate its run.

        Drops removed from the sale go back to unsold.

        Returns:
            tuple[SaleRecord, CascadeReport]: The recalculated sale and the full recalculation report.
        """

        sale = await self.get_sale(sale_id)
        run = await self.get_run(sale.run_id)

        if total_price_ws is not None:
            _require_non_negative(total_price_ws, "total_price_ws")
        if buyer is not None:
            buyer = buyer.strip()
            if not buyer:
                raise InvalidInputError("A buyer cannot be blank")

        new_drops = await self._sellable_drops(run, list(drop_ids), sale.id) if drop_ids is not None else None

        if total_price_ws is not None:
            sale.total_price_ws = total_price_ws
        if buyer is not None:
            sale.buyer = buyer
        if date is not None:
            sale.date = date

        if new_drops is not None:
            kept = {drop.id for drop in new_drops}
            for released_id in sale.drop_ids:
                if released_id in kept:
                    continue

                released = await self.store.get_drop(released_id)
                if released and released.sale_id == sale.id:
                    released.status = DropStatus.UNSOLD
                    released.sale_id = None
                    await self.store.save_drop(released)

            sale.drop_ids = [drop.id for drop in new_drops]
            await self._mark_sold(new_drops, sale.id)

        await self.store.save_sale(sale)

        report = await self.cascade.after_sale_change(sale)
        sale = next((updated for updated in report.recalculated if updated.id == sale.id), sale)
        return sale, report
