"""
Per-participant share computation for even and fixed splits.

``even``
    ``total_cost`` is the group total; every payer pays
    ``total_cost / n``.
``fixed``
    ``total_cost`` is a per-person rate.  If the groom is excluded and
    attending, the payers absorb the groom's seat and each pays
    ``rate * (n + 1) / n``.
``custom``
    Never computed here; rows are authored by an administrator.

Amounts keep full ``Decimal`` precision; nothing is rounded except
the human readable note, which shows whole dollars rounded half up.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional

from ..core.errors import InvalidConfigurationError


@dataclass(frozen=True)
class Share:
    amount: Decimal
    note: str


def _dollars(value: Decimal) -> str:
    return f"${Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"


class SplitCalculator:
    """Compute what each payer owes for an event."""

    @classmethod
    def compute_shares(
        cls,
        total_cost: Decimal,
        split_type: str,
        payers: Iterable[int],
        groom_attending_and_excluded: bool = False,
    ) -> Optional[Dict[int, Share]]:
        """Return a share per payer, or ``None`` when nothing is allocated.

        ``None`` (zero total or nobody paying) is distinct from a
        computed share of ``0``.  Raises ``InvalidConfigurationError``
        for ``custom`` or unknown split types.
        """
        if split_type == "custom":
            raise InvalidConfigurationError("Custom splits are managed manually")
        if split_type not in {"even", "fixed"}:
            raise InvalidConfigurationError(f"Unknown split type: {split_type}")

        payer_ids = sorted(set(payers))
        total_cost = Decimal(total_cost)
        if total_cost == 0 or not payer_ids:
            return None

        count = len(payer_ids)
        if split_type == "fixed":
            if groom_attending_and_excluded:
                per_person = total_cost * (count + 1) / count
                note = f"{_dollars(total_cost)}/person (covers groom)"
            else:
                per_person = total_cost
                note = f"{_dollars(total_cost)}/person"
        else:
            per_person = total_cost / count
            if groom_attending_and_excluded:
                note = f"{_dollars(total_cost)} ÷ {count} (covers groom)"
            else:
                note = "Even split"

        return {payer_id: Share(amount=per_person, note=note) for payer_id in payer_ids}
