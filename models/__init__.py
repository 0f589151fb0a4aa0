from .drops import Drop, DropBase, DropRecord
from .players import Player, PlayerBase, PlayerRecord
from .references import Expanded, IdRef, PlayerRef, display_name, player_ref
from .runs import EntryFeeConfig, Run, RunBase, RunParticipant, RunRecord
from .sales import Sale, SaleBase, SaleRecord, SplitDetail

__all__ = [
    "Drop",
    "DropBase",
    "DropRecord",
    "EntryFeeConfig",
    "Expanded",
    "IdRef",
    "Player",
    "PlayerBase",
    "PlayerRecord",
    "PlayerRef",
    "Run",
    "RunBase",
    "RunParticipant",
    "RunRecord",
    "Sale",
    "SaleBase",
    "SaleRecord",
    "SplitDetail",
    "display_name",
    "player_ref",
]
