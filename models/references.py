from collections.abc import Mapping
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel

from .players import PlayerRecord

RecordT = TypeVar("RecordT", bound=BaseModel)


class IdRef(BaseModel):
    """A reference that only carries the identifier of the record."""

    kind: Literal["id"] = "id"
    id: str

    @property
    def record(self) -> None:
        return None


class Expanded(BaseModel, Generic[RecordT]):
    """A reference whose record has been loaded alongside it."""

    kind: Literal["expanded"] = "expanded"
    record: RecordT

    @property
    def id(self) -> str:
        return self.record.id


PlayerRef = IdRef | Expanded[PlayerRecord]


def player_ref(player_id: str, players: Mapping[str, PlayerRecord]) -> PlayerRef:
    """
    Build a player reference, expanded when the player is known.

    Args:
        player_id (str): The player ID to reference.
        players (Mapping[str, PlayerRecord]): Loaded players keyed by ID.

    Returns:
        PlayerRef: An Expanded reference if the player was loaded, otherwise an IdRef.
    """

    player = players.get(player_id)
    if player is None:
        return IdRef(id=player_id)
    return Expanded[PlayerRecord](record=player)


def display_name(ref: PlayerRef) -> str:
    """Name to show for a player reference, falling back to a mention-free ID."""

    if ref.record is not None:
        return ref.record.name
    return f"Unknown ({ref.id})"
