"""
Rounding rules applied to a computed retail price.

Every rule is a row in ROUNDING_TABLE: the price snaps to the grid
``k * increment + ending`` in the row's direction. New rounding policies
are new rows, not new branches.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from enum import Enum


CENT = Decimal("0.01")
SAMPLE_PRICE = Decimal("24.67")


class RoundingRule(str, Enum):
    NONE = "none"
    UP_99 = "up_99"
    DOWN_99 = "down_99"
    UP_95 = "up_95"
    DOWN_95 = "down_95"
    UP_10CENT = "up_10cent"
    DOWN_10CENT = "down_10cent"
    NEAREST_DOLLAR = "nearest_dollar"
    UP_DOLLAR = "up_dollar"


class Direction(str, Enum):
    UP = ROUND_CEILING
    DOWN = ROUND_FLOOR
    NEAREST = ROUND_HALF_UP


@dataclass(frozen=True)
class RoundingStep:
    """A grid of allowed prices and the direction to snap toward."""
    direction: Direction
    increment: Decimal
    ending: Decimal = Decimal("0")
    label: str = ""

    def apply(self, price: Decimal) -> Decimal:
        steps = ((price - self.ending) / self.increment).quantize(
            Decimal("1"), rounding=self.direction.value
        )
        return (steps * self.increment + self.ending).quantize(CENT, rounding=ROUND_HALF_UP)


ROUNDING_TABLE: dict[RoundingRule, RoundingStep] = {
    RoundingRule.NONE: RoundingStep(Direction.NEAREST, CENT, label="No Rounding"),
    RoundingRule.UP_99: RoundingStep(Direction.UP, Decimal("1"), Decimal("0.99"), "Round Up to $X.99"),
    RoundingRule.DOWN_99: RoundingStep(Direction.DOWN, Decimal("1"), Decimal("0.99"), "Round Down to $X.99"),
    RoundingRule.UP_95: RoundingStep(Direction.UP, Decimal("1"), Decimal("0.95"), "Round Up to $X.95"),
    RoundingRule.DOWN_95: RoundingStep(Direction.DOWN, Decimal("1"), Decimal("0.95"), "Round Down to $X.95"),
    RoundingRule.UP_10CENT: RoundingStep(Direction.UP, Decimal("0.10"), label="Round Up to 10 Cents"),
    RoundingRule.DOWN_10CENT: RoundingStep(Direction.DOWN, Decimal("0.10"), label="Round Down to 10 Cents"),
    RoundingRule.NEAREST_DOLLAR: RoundingStep(Direction.NEAREST, Decimal("1"), label="Round to Nearest Dollar"),
    RoundingRule.UP_DOLLAR: RoundingStep(Direction.UP, Decimal("1"), label="Round Up to Dollar"),
}


def apply_rounding(price: Decimal, rule: RoundingRule) -> Decimal:
    """Apply a rounding rule to a price, returning a two-decimal value."""
    return ROUNDING_TABLE[RoundingRule(rule)].apply(Decimal(str(price)))


def rounding_examples(price: Decimal = SAMPLE_PRICE) -> dict[str, str]:
    """Every rounding rule applied to ``price``, formatted to two decimals."""
    return {
        rule.value: f"{apply_rounding(Decimal(str(price)), rule):.2f}"
        for rule in RoundingRule
    }


def rounding_label(rule: RoundingRule) -> str:
    return ROUNDING_TABLE[RoundingRule(rule)].label or RoundingRule(rule).value
