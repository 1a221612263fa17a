"""Conversion between the flat persisted rule record and the rule model."""
from decimal import Decimal

import pytest

from retail_pricing.engine import (
    CostMargin,
    CostMarkup,
    Map,
    MapPremium,
    Msrp,
    PricePoint,
    PricingRule,
    RoundingRule,
    RuleConfigError,
)
from retail_pricing.engine.models import DEFAULT_RULE_RECORD, to_decimal


def test_defaults():
    rule = PricingRule()
    assert rule.primary == Msrp()
    assert rule.fallback == Map()
    assert rule.rounding == RoundingRule.NONE
    assert rule.use_cross_vendor_fallback is False
    assert DEFAULT_RULE_RECORD['primaryStrategy'] == 'msrp'
    assert DEFAULT_RULE_RECORD['fallbackStrategy'] == 'map'


def test_empty_record_builds_default_rule():
    assert PricingRule.from_record({}) == PricingRule()


def test_from_record_reads_only_owned_parameter():
    rule = PricingRule.from_record({
        'primaryStrategy': 'map_premium',
        'premiumAmount': '5.00',
        'markupPercentage': '25',
        'discountPercentage': '10',
        'roundingRule': 'up_99',
        'fallbackStrategy': 'cost_markup',
        'fallbackMarkupPercentage': 30,
        'useCrossVendorFallback': True,
    })
    assert rule.primary == MapPremium(Decimal('5.00'))
    assert rule.fallback == CostMarkup(Decimal('30'))
    assert rule.rounding == RoundingRule.UP_99
    assert rule.use_cross_vendor_fallback is True


def test_to_record_clears_unrelated_parameters():
    record = PricingRule(primary=CostMargin(Decimal('20')), fallback=None).to_record()
    assert record['primaryStrategy'] == 'cost_margin'
    assert record['marginPercentage'] == '20'
    assert record['markupPercentage'] is None
    assert record['premiumAmount'] is None
    assert record['fallbackStrategy'] == 'none'
    assert record['fallbackMarkupPercentage'] is None


def test_record_round_trip_keeps_rule():
    rule = PricingRule(
        primary=CostMarkup(Decimal('25')),
        fallback=CostMargin(Decimal('15')),
        rounding=RoundingRule.DOWN_95,
        use_cross_vendor_fallback=True,
    )
    assert PricingRule.from_record(rule.to_record()) == rule


@pytest.mark.parametrize("value", [None, ''])
def test_blank_fallback_means_none(value):
    assert PricingRule.from_record({'fallbackStrategy': value}).fallback is None


def test_missing_parameter_is_a_config_error():
    with pytest.raises(RuleConfigError, match='markupPercentage'):
        PricingRule.from_record({'primaryStrategy': 'cost_markup', 'marginPercentage': '20'})


def test_missing_fallback_parameter_is_a_config_error():
    with pytest.raises(RuleConfigError, match='fallbackMarkupPercentage'):
        PricingRule.from_record({'fallbackStrategy': 'cost_margin'})


@pytest.mark.parametrize("record", [
    {'primaryStrategy': 'cheapest'},
    {'fallbackStrategy': 'map_premium'},
    {'roundingRule': 'up_97'},
    {'primaryStrategy': 'cost_markup', 'markupPercentage': 'lots'},
])
def test_bad_records_rejected(record):
    with pytest.raises(RuleConfigError):
        PricingRule.from_record(record)


def test_to_decimal_parsing():
    assert to_decimal(' $1,249.50 ') == Decimal('1249.50')
    assert to_decimal('') is None
    assert to_decimal(float('nan')) is None
    assert to_decimal(12.5) == Decimal('12.5')
    with pytest.raises(ValueError):
        to_decimal('n/a')


@pytest.mark.parametrize("value", ['inf', '-Infinity', float('inf'), Decimal('Infinity'), Decimal('NaN')])
def test_to_decimal_non_finite_is_none(value):
    assert to_decimal(value) is None


@pytest.mark.parametrize("value, expected", [
    ('false', False),
    ('False', False),
    ('0', False),
    ('', False),
    ('true', True),
    (' TRUE ', True),
    ('1', True),
    (True, True),
    (False, False),
    (None, False),
    (1, True),
])
def test_cross_vendor_flag_parsing(value, expected):
    rule = PricingRule.from_record({'useCrossVendorFallback': value})
    assert rule.use_cross_vendor_fallback is expected


def test_price_point_figures():
    point = PricePoint.from_values('Vendor A', cost='10', map='0', msrp=None)
    assert point.figure('cost') == Decimal('10')
    assert point.figure('map') is None
    assert point.figure('msrp') is None
