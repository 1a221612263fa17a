from decimal import Decimal

import pytest

from retail_pricing.engine.rounding import (
    ROUNDING_TABLE,
    RoundingRule,
    apply_rounding,
    rounding_examples,
)


@pytest.mark.parametrize("rule, expected", [
    (RoundingRule.NONE, '24.67'),
    (RoundingRule.UP_99, '24.99'),
    (RoundingRule.DOWN_99, '23.99'),
    (RoundingRule.UP_95, '24.95'),
    (RoundingRule.DOWN_95, '23.95'),
    (RoundingRule.UP_10CENT, '24.70'),
    (RoundingRule.DOWN_10CENT, '24.60'),
    (RoundingRule.NEAREST_DOLLAR, '25.00'),
    (RoundingRule.UP_DOLLAR, '25.00'),
])
def test_sample_price(rule, expected):
    assert apply_rounding(Decimal('24.67'), rule) == Decimal(expected)


def test_rounding_examples_cover_every_rule():
    examples = rounding_examples()
    assert set(examples) == {r.value for r in RoundingRule}
    assert examples['up_99'] == '24.99'
    assert examples['down_10cent'] == '24.60'
    assert examples['nearest_dollar'] == '25.00'


def test_every_rule_has_a_table_entry():
    assert set(ROUNDING_TABLE) == set(RoundingRule)


@pytest.mark.parametrize("price, expected", [
    ('24.50', '25.00'),
    ('23.50', '24.00'),
    ('24.49', '24.00'),
])
def test_nearest_dollar_rounds_half_up(price, expected):
    assert apply_rounding(Decimal(price), RoundingRule.NEAREST_DOLLAR) == Decimal(expected)


def test_none_rounds_to_cents_half_up():
    assert apply_rounding(Decimal('12.345'), RoundingRule.NONE) == Decimal('12.35')
    assert apply_rounding(Decimal('12.5'), RoundingRule.NONE) == Decimal('12.50')


def test_up_rules_on_whole_dollar():
    assert apply_rounding(Decimal('25.00'), RoundingRule.UP_99) == Decimal('25.99')
    assert apply_rounding(Decimal('25.00'), RoundingRule.UP_DOLLAR) == Decimal('25.00')
    assert apply_rounding(Decimal('25.96'), RoundingRule.UP_95) == Decimal('26.95')


def test_up_10cent_on_unrounded_value():
    assert apply_rounding(Decimal('12.3333333'), RoundingRule.UP_10CENT) == Decimal('12.40')
    assert apply_rounding(Decimal('12.3333333'), RoundingRule.DOWN_10CENT) == Decimal('12.30')


@pytest.mark.parametrize("rule", list(RoundingRule))
@pytest.mark.parametrize("price", ['24.67', '0.99', '1.00', '99.95', '1234.5', '7.333333'])
def test_rounding_is_idempotent(rule, price):
    once = apply_rounding(Decimal(price), rule)
    assert apply_rounding(once, rule) == once


def test_accepts_rule_value_strings():
    assert apply_rounding(Decimal('24.67'), 'up_dollar') == Decimal('25.00')
