"""
Static catalog of the supported lottery games.

Each game's number space is fixed: a single draw range, or two independent
ranges (main balls plus a bonus ball). Ranges never change at runtime.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.utils import timezone

from predictions.exceptions import UnknownLottery

SINGLE = "single"
DOUBLE = "double"

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class NumberRange:
    low: int
    high: int
    pick: int

    def __contains__(self, number):
        return isinstance(number, int) and self.low <= number <= self.high

    def numbers(self):
        return range(self.low, self.high + 1)

    @property
    def size(self):
        return self.high - self.low + 1


@dataclass(frozen=True)
class LotteryDefinition:
    code: str
    name: str
    kind: str
    primary: NumberRange
    secondary: NumberRange = None
    price: Decimal = Decimal("1.00")
    state: str = ""
    # (weekday, "HH:MM") pairs in the project time zone.
    draw_schedule: tuple = field(default_factory=tuple)

    @property
    def is_double(self):
        return self.kind == DOUBLE

    def next_draw(self, now=None):
        """Return the next scheduled draw strictly after `now`, or None."""
        now = timezone.localtime(now or timezone.now())
        upcoming = []
        for day, hhmm in self.draw_schedule:
            hours, minutes = (int(part) for part in hhmm.split(":"))
            days_ahead = (WEEKDAYS.index(day) - now.weekday()) % 7
            candidate = datetime.combine(
                now.date() + timedelta(days=days_ahead),
                time(hours, minutes),
                tzinfo=now.tzinfo,
            )
            if candidate <= now:
                candidate += timedelta(days=7)
            upcoming.append(candidate)
        return min(upcoming) if upcoming else None


LOTTERIES = {
    lottery.code: lottery
    for lottery in (
        LotteryDefinition(
            code="powerball",
            name="Powerball (USA)",
            kind=DOUBLE,
            primary=NumberRange(1, 69, 5),
            secondary=NumberRange(1, 26, 1),
            price=Decimal("2.00"),
            state="Multi-State",
            draw_schedule=(("wednesday", "20:59"), ("saturday", "20:59")),
        ),
        LotteryDefinition(
            code="megamillion",
            name="Mega Millions (USA)",
            kind=DOUBLE,
            primary=NumberRange(1, 70, 5),
            secondary=NumberRange(1, 25, 1),
            price=Decimal("5.00"),
            state="Multi-State",
            draw_schedule=(("tuesday", "23:00"), ("friday", "23:00")),
        ),
        LotteryDefinition(
            code="lottoamerica",
            name="Lotto America (USA)",
            kind=DOUBLE,
            primary=NumberRange(1, 52, 5),
            secondary=NumberRange(1, 10, 1),
            price=Decimal("1.00"),
            state="Multi-State",
            draw_schedule=(("wednesday", "22:00"), ("saturday", "22:00")),
        ),
        LotteryDefinition(
            code="gopher5",
            name="Gopher 5 (Minnesota)",
            kind=SINGLE,
            primary=NumberRange(1, 47, 5),
            price=Decimal("1.00"),
            state="Minnesota",
            draw_schedule=(
                ("monday", "18:00"),
                ("wednesday", "18:00"),
                ("friday", "18:00"),
            ),
        ),
        LotteryDefinition(
            code="pick3",
            name="Pick 3 (Minnesota)",
            kind=SINGLE,
            # Digit game: each position is drawn from 0-9.
            primary=NumberRange(0, 9, 3),
            price=Decimal("1.00"),
            state="Minnesota",
            draw_schedule=tuple((day, "18:00") for day in WEEKDAYS),
        ),
    )
}

LOTTERY_CHOICES = [(lottery.code, lottery.name) for lottery in LOTTERIES.values()]


def get_lottery(code) -> LotteryDefinition:
    """Look up a lottery by code, case-insensitively."""
    try:
        return LOTTERIES[(code or "").lower()]
    except KeyError:
        raise UnknownLottery(code) from None
