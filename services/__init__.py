from .calculations import (
    compute_net_after_fees_ws,
    compute_sale_split,
    compute_split_by_shares,
    compute_total_entry_fee_ws,
    round2,
)
from .errors import InvalidInputError, LedgerError, NotFoundError
from .ledger import LedgerService
from .recalculation import CascadeReport, RecalculationCascade
from .store import BeanieLedgerStore, LedgerStore
from .summary import RunSummary

__all__ = [
    "BeanieLedgerStore",
    "CascadeReport",
    "InvalidInputError",
    "LedgerError",
    "LedgerService",
    "LedgerStore",
    "NotFoundError",
    "RecalculationCascade",
    "RunSummary",
    "compute_net_after_fees_ws",
    "compute_sale_split",
    "compute_split_by_shares",
    "compute_total_entry_fee_ws",
    "round2",
]
