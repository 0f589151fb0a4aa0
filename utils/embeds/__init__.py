from .common import ErrorEmbed, SuccessEmbed
from .players import PlayersEmbed
from .run import RunEmbed, RunSummaryEmbed
from .sale import SaleEmbed

__all__ = ["SuccessEmbed", "ErrorEmbed", "PlayersEmbed", "RunEmbed", "RunSummaryEmbed", "SaleEmbed"]
