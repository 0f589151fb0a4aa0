"""
Entry fee and proceeds splitting.

All monetary values are WS floats rounded to cents with :func:`round2` before they are
stored or compared.
"""

import math
import sys
from collections.abc import Sequence

from pydantic import BaseModel

from models.runs import EntryFeeConfig, RunParticipant
from models.sales import SplitDetail

CENT: float = 0.01

# Remainders smaller than this are treated as fully distributed
_REMAINDER_TOLERANCE: float = 0.001


class SplitAmount(BaseModel):
    player_id: str
    amount_ws: float


class SplitResult(BaseModel):
    total: float
    per_participant: list[SplitAmount]


class SaleSplit(BaseModel):
    net_after_fees_ws: float
    split: SplitResult


def round2(value: float) -> float:
    """
    Round a WS amount to two decimals, halves towards positive infinity.

    The machine epsilon nudges values such as 1.005 (stored as 1.00499...) back over the half.

    Args:
        value (float): The amount to round.

    Returns:
        float: The amount rounded to cents.
    """

    return math.floor((value + sys.float_info.epsilon) * 100 + 0.5) / 100


def compute_total_entry_fee_ws(config: EntryFeeConfig) -> float:
    """Compute the total entry fee of a run in WS."""

    essence_total = config.essence_required * config.essence_price_ws
    stone_total = config.stone_required * config.stone_price_ws
    return round2(essence_total + stone_total)


def _distribute_remainder(amounts: list[float], remainder: float, recipients: list[int]) -> None:
    """
    Hand out a rounding remainder one cent at a time, cycling through the recipients in order.

    Args:
        amounts (list[float]): Rounded shares, updated in place.
        remainder (float): The signed amount left to distribute.
        recipients (list[int]): Indexes into amounts that may receive cents, in priority order.
    """

    if not recipients:
        return

    cent = CENT if remainder > 0 else -CENT
    position = 0
    while abs(remainder) > _REMAINDER_TOLERANCE:
        index = recipients[position % len(recipients)]
        amounts[index] = round2(amounts[index] + cent)
        remainder = round2(remainder - cent)
        position += 1


def compute_split_by_shares(total_amount_ws: float, participants: Sequence[RunParticipant]) -> SplitResult:
    """
    Split an amount between participants in proportion to their share modifiers.

    Every share is rounded to cents and the rounding remainder is handed out one cent at a
    time from the first participant onwards, so the shares always add up to the rounded
    total. Negative totals (entry fees exceeding proceeds) split the same way.

    If the weights do not add up to something positive the amount is split equally.
    Participants with a zero weight get nothing, including no remainder cents.

    Args:
        total_amount_ws (float): The amount to split, any sign.
        participants (Sequence[RunParticipant]): Participants in priority order.

    Returns:
        SplitResult: The rounded total and one amount per participant, in input order.
    """

    if not participants:
        return SplitResult(total=0, per_participant=[])

    total = round2(total_amount_ws)
    if total == 0:
        return SplitResult(
            total=0,
            per_participant=[SplitAmount(player_id=p.player_id, amount_ws=0) for p in participants],
        )

    weights = [p.share_modifier for p in participants]
    weight_sum = sum(weights)

    if weight_sum <= 0:
        # Corrupted weights, fall back to an equal split between everyone
        raw_shares = [total / len(participants)] * len(participants)
        recipients = list(range(len(participants)))
    else:
        raw_shares = [total * (weight / weight_sum) for weight in weights]
        recipients = [index for index, weight in enumerate(weights) if weight > 0]

    amounts = [round2(share) for share in raw_shares]
    remainder = round2(total - sum(amounts))
    _distribute_remainder(amounts, remainder, recipients)

    return SplitResult(
        total=round2(sum(amounts)),
        per_participant=[
            SplitAmount(player_id=participant.player_id, amount_ws=amount) for participant, amount in zip(participants, amounts)
        ],
    )


def compute_net_after_fees_ws(total_price_ws: float, remaining_unpaid_entry_fee_ws: float) -> float:
    """Sale proceeds left after paying off what remains of the entry fee. Negative when the fee is larger."""

    return round2(total_price_ws - max(0.0, remaining_unpaid_entry_fee_ws))


def compute_sale_split(
    total_price_ws: float, remaining_unpaid_entry_fee_ws: float, participants: Sequence[RunParticipant]
) -> SaleSplit:
    """
    Compute the net proceeds of a sale and how they split between the run's participants.

    Args:
        total_price_ws (float): Gross sale price.
        remaining_unpaid_entry_fee_ws (float): Entry fee still unpaid when this sale happened.
        participants (Sequence[RunParticipant]): The run's participants.

    Returns:
        SaleSplit: The net amount and its split.
    """

    net_after_fees_ws = compute_net_after_fees_ws(total_price_ws, remaining_unpaid_entry_fee_ws)
    split = compute_split_by_shares(net_after_fees_ws, participants)
    return SaleSplit(net_after_fees_ws=net_after_fees_ws, split=split)


def split_details_from(split: SplitResult) -> list[SplitDetail]:
    """Fresh, unpaid split entries for a computed split."""

    return [SplitDetail(player_id=s.player_id, amount_ws=s.amount_ws, is_paid=False) for s in split.per_participant]
