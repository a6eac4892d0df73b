"""
Split calculation: turns items plus assignments into what each participant owes.

Every item is divided equally among its current assignees. Shares are kept at
full Decimal precision and only each participant's total is rounded to cents,
half away from zero.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple

from receipt_split.assignments.store import AssignmentStore
from receipt_split.models import LineItem, Participant, SplitResult, SplitShare

CENT = Decimal('0.01')

SHARE_TEXT_FOOTER = "Sent from Receipt Split"


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_splits(
    keyed_items: Sequence[Tuple[str, LineItem]],
    store: AssignmentStore,
    participants: Iterable[Participant],
) -> List[SplitResult]:
    """
    Computes the per-participant breakdown.

    Args:
        keyed_items: (stable item key, item) pairs in receipt order.
        store: Current assignments.
        participants: Participants in display order; each gets a result,
            with a zero total when assigned to nothing.

    Returns:
        One SplitResult per participant, in the order given.
    """
    results = []
    for participant in participants:
        participant_key = participant.key
        running_total = Decimal('0')
        shares = []

        for item_key, item in keyed_items:
            assignees = store.assignees(item_key)
            if participant_key not in assignees:
                continue
            share = item.line_total / len(assignees)
            running_total += share
            shares.append(SplitShare(name=item.name, price=item.line_total, share_amount=share))

        results.append(SplitResult(
            participant_id=participant_key,
            participant_name=participant.name,
            color_token=participant.color_token,
            is_self=participant.is_self,
            total_owed=round_money(running_total),
            item_count=len(shares),
            items=shares,
        ))
    return results


def total_assigned(results: Iterable[SplitResult]) -> Decimal:
    """Sum of rounded totals; equals the assigned item total up to rounding."""
    return sum((r.total_owed for r in results), Decimal('0.00'))


def render_share_text(
    results: Iterable[SplitResult],
    store_name: Optional[str] = None,
    total_amount: Optional[Decimal] = None,
    currency: str = "EUR",
) -> str:
    """Plain-text summary suitable for pasting into a chat message."""
    lines = [f"Split for {store_name or 'Receipt'}"]
    if total_amount is not None:
        lines.append(f"Total: {round_money(total_amount):.2f} {currency}")
    lines.append("")

    for result in sorted(results, key=lambda r: r.total_owed, reverse=True):
        lines.append(f"{result.participant_name}: {result.total_owed:.2f} {currency}")

    lines.append("")
    lines.append(SHARE_TEXT_FOOTER)
    return "\n".join(lines)
