from typing import Protocol, TypeVar

from beanie import Document, PydanticObjectId
from pydantic import BaseModel

from models import (
    Drop,
    DropBase,
    DropRecord,
    Player,
    PlayerBase,
    PlayerRecord,
    Run,
    RunBase,
    RunRecord,
    Sale,
    SaleBase,
    SaleRecord,
)

RecordT = TypeVar("RecordT", bound=BaseModel)


class LedgerStore(Protocol):
    """Persistence used by the ledger. Writes are single-record and last-writer-wins."""

    # Players
    async def get_player(self, player_id: str) -> PlayerRecord | None: ...
    async def find_player_by_name(self, name: str) -> PlayerRecord | None: ...
    async def find_player_by_discord_id(self, discord_id: str) -> PlayerRecord | None: ...
    async def list_players(self) -> list[PlayerRecord]: ...
    async def insert_player(self, player: PlayerBase) -> PlayerRecord: ...
    async def save_player(self, player: PlayerRecord) -> None: ...

    # Runs
    async def get_run(self, run_id: str) -> RunRecord | None: ...
    async def get_run_by_number(self, run_number: int) -> RunRecord | None: ...
    async def last_run_number(self) -> int: ...
    async def insert_run(self, run: RunBase) -> RunRecord: ...
    async def save_run(self, run: RunRecord) -> None: ...
    async def delete_run(self, run_id: str) -> None: ...

    # Drops
    async def get_drop(self, drop_id: str) -> DropRecord | None: ...
    async def find_drops_for_run(self, run_id: str) -> list[DropRecord]: ...
    async def insert_drop(self, drop: DropBase) -> DropRecord: ...
    async def save_drop(self, drop: DropRecord) -> None: ...

    # Sales
    async def get_sale(self, sale_id: str) -> SaleRecord | None: ...
    async def list_sales(self) -> list[SaleRecord]: ...
    async def find_sales_for_run(self, run_id: str) -> list[SaleRecord]: ...
    async def find_sales_with_drop(self, drop_id: str) -> list[SaleRecord]: ...
    async def find_sales_for_player(self, player_id: str) -> list[SaleRecord]: ...
    async def insert_sale(self, sale: SaleBase) -> SaleRecord: ...
    async def save_sale(self, sale: SaleRecord) -> None: ...


def _object_id(value: str) -> PydanticObjectId | None:
    return PydanticObjectId(value) if PydanticObjectId.is_valid(value) else None


def _to_record(record_cls: type[RecordT], document: Document) -> RecordT:
    return record_cls(id=str(document.id), **document.model_dump(exclude={"id", "revision_id"}))


def _to_document(document_cls: type[Document], record: BaseModel) -> Document:
    return document_cls(id=PydanticObjectId(record.id), **record.model_dump(exclude={"id"}))


class BeanieLedgerStore:
    """A LedgerStore backed by the Beanie documents in MongoDB."""

    async def _get(self, document_cls: type[Document], record_cls: type[RecordT], identifier: str) -> RecordT | None:
        object_id = _object_id(identifier)
        if object_id is None:
            return None

        document = await document_cls.get(object_id)
        return _to_record(record_cls, document) if document else None

    async def _insert(self, document_cls: type[Document], record_cls: type[RecordT], data: BaseModel) -> RecordT:
        document = document_cls(**data.model_dump())
        await document.insert()
        return _to_record(record_cls, document)

    async def get_player(self, player_id: str) -> PlayerRecord | None:
        return await self._get(Player, PlayerRecord, player_id)

    async def find_player_by_name(self, name: str) -> PlayerRecord | None:
        # Names are matched case-insensitively
        players = await self.list_players()
        return next((player for player in players if player.name.casefold() == name.strip().casefold()), None)

    async def find_player_by_discord_id(self, discord_id: str) -> PlayerRecord | None:
        player = await Player.find_one(Player.discord_id == discord_id)
        return _to_record(PlayerRecord, player) if player else None

    async def list_players(self) -> list[PlayerRecord]:
        players = await Player.find_all().sort(+Player.name).to_list()
        return [_to_record(PlayerRecord, player) for player in players]

    async def insert_player(self, player: PlayerBase) -> PlayerRecord:
        return await self._insert(Player, PlayerRecord, player)

    async def save_player(self, player: PlayerRecord) -> None:
        await _to_document(Player, player).save()

    async def get_run(self, run_id: str) -> RunRecord | None:
        return await self._get(Run, RunRecord, run_id)

    async def get_run_by_number(self, run_number: int) -> RunRecord | None:
        run = await Run.find_one(Run.run_number == run_number)
        return _to_record(RunRecord, run) if run else None

    async def last_run_number(self) -> int:
        runs = await Run.find_all().sort(-Run.run_number).limit(1).to_list()
        return runs[0].run_number if runs else 0

    async def insert_run(self, run: RunBase) -> RunRecord:
        return await self._insert(Run, RunRecord, run)

    async def save_run(self, run: RunRecord) -> None:
        await _to_document(Run, run).save()

    async def delete_run(self, run_id: str) -> None:
        await Drop.find(Drop.run_id == run_id).delete()
        await Sale.find(Sale.run_id == run_id).delete()

        object_id = _object_id(run_id)
        if object_id is not None:
            await Run.find_one(Run.id == object_id).delete()

    async def get_drop(self, drop_id: str) -> DropRecord | None:
        return await self._get(Drop, DropRecord, drop_id)

    async def find_drops_for_run(self, run_id: str) -> list[DropRecord]:
        drops = await Drop.find(Drop.run_id == run_id).sort(+Drop.created_at).to_list()
        return [_to_record(DropRecord, drop) for drop in drops]

    async def insert_drop(self, drop: DropBase) -> DropRecord:
        return await self._insert(Drop, DropRecord, drop)

    async def save_drop(self, drop: DropRecord) -> None:
        await _to_document(Drop, drop).save()

    async def get_sale(self, sale_id: str) -> SaleRecord | None:
        return await self._get(Sale, SaleRecord, sale_id)

    async def list_sales(self) -> list[SaleRecord]:
        sales = await Sale.find_all().sort(+Sale.date).to_list()
        return [_to_record(SaleRecord, sale) for sale in sales]

    async def find_sales_for_run(self, run_id: str) -> list[SaleRecord]:
        sales = await Sale.find(Sale.run_id == run_id).sort(+Sale.date, +Sale.created_at).to_list()
        return [_to_record(SaleRecord, sale) for sale in sales]

    async def find_sales_with_drop(self, drop_id: str) -> list[SaleRecord]:
        sales = await Sale.find({"drop_ids": drop_id}).to_list()
        return [_to_record(SaleRecord, sale) for sale in sales]

    async def find_sales_for_player(self, player_id: str) -> list[SaleRecord]:
        sales = await Sale.find({"split_details.player_id": player_id}).to_list()
        return [_to_record(SaleRecord, sale) for sale in sales]

    async def insert_sale(self, sale: SaleBase) -> SaleRecord:
        return await self._insert(Sale, SaleRecord, sale)

    async def save_sale(self, sale: SaleRecord) -> None:
        await _to_document(Sale, sale).save()
