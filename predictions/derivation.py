"""
Viable-number derivation.

A prediction stores the numbers an admin marked as non-viable for a drawing;
the viable (recommended) numbers are their complement within the lottery's
range(s). Everything here is a pure function of its inputs and the static
catalog.
"""

from dataclasses import dataclass

from predictions.catalog import get_lottery


@dataclass(frozen=True)
class ViableNumbers:
    """
    Derived numbers in ascending order.

    `secondary` is None for single-range lotteries. `available` is False when
    the prediction carried no numbers at all, which means "no recommendation",
    not "avoid everything".
    """

    primary: tuple
    secondary: tuple = None
    available: bool = True

    def as_dict(self):
        if not self.available:
            return None
        data = {"primary": list(self.primary)}
        if self.secondary is not None:
            data["secondary"] = list(self.secondary)
        return data


def _as_int_set(numbers):
    result = set()
    for number in numbers or ():
        if isinstance(number, bool):
            continue
        if isinstance(number, int):
            result.add(number)
        elif isinstance(number, float) and number.is_integer():
            result.add(int(number))
    return result


def complement(number_range, excluded):
    """All numbers of the range not in `excluded`, ascending."""
    excluded = _as_int_set(excluded)
    return tuple(n for n in number_range.numbers() if n not in excluded)


def within(number_range, numbers):
    """The in-range, de-duplicated members of `numbers`, ascending."""
    return tuple(sorted(n for n in _as_int_set(numbers) if n in number_range))


def derive_viable(lottery_code, non_viable_primary, non_viable_secondary=None):
    """
    Compute the viable numbers for one drawing.

    Out-of-range inputs are ignored. For double-range lotteries both ranges
    are complemented independently; for single-range ones the secondary
    input is ignored.
    """
    lottery = get_lottery(lottery_code)
    primary = complement(lottery.primary, non_viable_primary)
    if not lottery.is_double:
        return ViableNumbers(primary=primary)
    return ViableNumbers(
        primary=primary,
        secondary=complement(lottery.secondary, non_viable_secondary),
    )


def viable_numbers_for(prediction):
    """
    Derive a stored prediction's viable numbers.

    Non-viable numbers are the source of truth whenever any are recorded.
    Rows predating that convention may only carry viable numbers, which are
    then returned as stored (restricted to the valid range).
    """
    lottery = get_lottery(prediction.lottery_code)
    non_primary = prediction.non_viable_primary or []
    non_secondary = (prediction.non_viable_secondary or []) if lottery.is_double else []

    if non_primary or non_secondary:
        return derive_viable(lottery.code, non_primary, non_secondary)

    legacy_primary = prediction.legacy_viable_primary or []
    legacy_secondary = (
        (prediction.legacy_viable_secondary or []) if lottery.is_double else []
    )
    if legacy_primary or legacy_secondary:
        return ViableNumbers(
            primary=within(lottery.primary, legacy_primary),
            secondary=(
                within(lottery.secondary, legacy_secondary)
                if lottery.is_double
                else None
            ),
        )

    return ViableNumbers(
        primary=(),
        secondary=() if lottery.is_double else None,
        available=False,
    )


def legacy_to_non_viable(lottery_code, viable_primary, viable_secondary=None):
    """
    Convert legacy viable numbers into the canonical non-viable form.

    Returns a (primary, secondary) pair of ascending lists; secondary is
    empty for single-range lotteries.
    """
    lottery = get_lottery(lottery_code)
    primary = list(complement(lottery.primary, viable_primary))
    secondary = []
    if lottery.is_double:
        secondary = list(complement(lottery.secondary, viable_secondary))
    return primary, secondary
