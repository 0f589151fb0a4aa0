import itertools
from datetime import datetime, timedelta, timezone

import pytest

from models import (
    DropBase,
    DropRecord,
    PlayerBase,
    PlayerRecord,
    RunBase,
    RunRecord,
    SaleBase,
    SaleRecord,
)
from services import LedgerService


class MemoryLedgerStore:
    """A LedgerStore keeping records in dicts. Reads and writes hand out copies, like a database would."""

    def __init__(self) -> None:
        self.players: dict[str, PlayerRecord] = {}
        self.runs: dict[str, RunRecord] = {}
        self.drops: dict[str, DropRecord] = {}
        self.sales: dict[str, SaleRecord] = {}
        self.writes = 0
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def _put(self, table: dict, record) -> None:
        self.writes += 1
        table[record.id] = record.model_copy(deep=True)

    @staticmethod
    def _copy(record):
        return record.model_copy(deep=True) if record else None

    # Players

    async def get_player(self, player_id):
        return self._copy(self.players.get(player_id))

    async def find_player_by_name(self, name):
        wanted = name.strip().casefold()
        return self._copy(next((p for p in self.players.values() if p.name.casefold() == wanted), None))

    async def find_player_by_discord_id(self, discord_id):
        return self._copy(next((p for p in self.players.values() if p.discord_id == discord_id), None))

    async def list_players(self):
        return [self._copy(p) for p in sorted(self.players.values(), key=lambda p: p.name)]

    async def insert_player(self, player: PlayerBase):
        record = PlayerRecord(id=self._next_id("player-"), **player.model_dump())
        self._put(self.players, record)
        return self._copy(record)

    async def save_player(self, player):
        self._put(self.players, player)

    # Runs

    async def get_run(self, run_id):
        return self._copy(self.runs.get(run_id))

    async def get_run_by_number(self, run_number):
        return self._copy(next((r for r in self.runs.values() if r.run_number == run_number), None))

    async def last_run_number(self):
        return max((r.run_number for r in self.runs.values()), default=0)

    async def insert_run(self, run: RunBase):
        record = RunRecord(id=self._next_id("run-"), **run.model_dump())
        self._put(self.runs, record)
        return self._copy(record)

    async def save_run(self, run):
        self._put(self.runs, run)

    async def delete_run(self, run_id):
        self.writes += 1
        self.runs.pop(run_id, None)
        self.drops = {k: d for k, d in self.drops.items() if d.run_id != run_id}
        self.sales = {k: s for k, s in self.sales.items() if s.run_id != run_id}

    # Drops

    async def get_drop(self, drop_id):
        return self._copy(self.drops.get(drop_id))

    async def find_drops_for_run(self, run_id):
        return [self._copy(d) for d in self.drops.values() if d.run_id == run_id]

    async def insert_drop(self, drop: DropBase):
        record = DropRecord(id=self._next_id("drop-"), **drop.model_dump())
        self._put(self.drops, record)
        return self._copy(record)

    async def save_drop(self, drop):
        self._put(self.drops, drop)

    # Sales

    async def get_sale(self, sale_id):
        return self._copy(self.sales.get(sale_id))

    async def list_sales(self):
        return [self._copy(s) for s in self.sales.values()]

    async def find_sales_for_run(self, run_id):
        sales = [self._copy(s) for s in self.sales.values() if s.run_id == run_id]
        return sorted(sales, key=lambda s: (s.date, s.created_at))

    async def find_sales_with_drop(self, drop_id):
        return [self._copy(s) for s in self.sales.values() if drop_id in s.drop_ids]

    async def find_sales_for_player(self, player_id):
        return [self._copy(s) for s in self.sales.values() if any(d.player_id == player_id for d in s.split_details)]

    async def insert_sale(self, sale: SaleBase):
        record = SaleRecord(id=self._next_id("sale-"), **sale.model_dump())
        self._put(self.sales, record)
        return self._copy(record)

    async def save_sale(self, sale):
        self._put(self.sales, sale)


BASE_DATE = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def day(offset: int) -> datetime:
    """A fixed date a number of days after the first test day."""

    return BASE_DATE + timedelta(days=offset)


@pytest.fixture
def store() -> MemoryLedgerStore:
    return MemoryLedgerStore()


@pytest.fixture
def ledger(store: MemoryLedgerStore) -> LedgerService:
    return LedgerService(store)
