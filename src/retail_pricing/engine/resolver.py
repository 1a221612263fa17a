"""
Pricing rule resolver - turns a vendor's published figures into a retail price.

Resolution order:
1. Primary strategy against the selected vendor's price point
2. Cross-vendor substitution (MAP/MSRP based strategies, when enabled)
3. Fallback strategy when the primary strategy's input is missing
4. Rounding rule
5. Positive, two-decimal result

Pure function: no I/O and no shared state. Failures come back on the
PriceResolution, they are never raised.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from .models import (
    PricePoint,
    PriceResolution,
    PricingErrorKind,
    PricingRule,
    Strategy,
)
from .rounding import CENT, apply_rounding


def max_cross_vendor_figure(field_name: str, others: Iterable[PricePoint]) -> Optional[PricePoint]:
    """Return the sibling price point publishing the highest ``field_name``, if any."""
    best = None
    for point in others:
        value = point.figure(field_name)
        if value is None:
            continue
        if best is None or value > best.figure(field_name):
            best = point
    return best


def _money(value: Decimal) -> str:
    return f"${value.quantize(CENT, rounding=ROUND_HALF_UP)}"


def _evaluate(strategy: Strategy, point: PricePoint, result: PriceResolution, label: str) -> Optional[Decimal]:
    """Apply ``strategy`` to ``point``; None when the required figure is absent."""
    base = point.figure(strategy.required_field)
    if base is None:
        result.add_trace(label, f"{point.vendor} has no {strategy.required_field.upper()}", strategy.name)
        return None
    price = strategy.apply(base)
    result.add_trace(
        label,
        f"{strategy.name} on {strategy.required_field.upper()} {_money(base)} from {point.vendor}",
        _money(price),
    )
    return price


def resolve_price(
    rule: PricingRule,
    selected: PricePoint,
    others: Iterable[PricePoint] = (),
) -> PriceResolution:
    """
    Resolve the retail price for one product.

    Args:
        rule: Configured pricing rule
        selected: Price point of the vendor being priced
        others: Price points of the other vendors carrying the same product,
            used only for cross-vendor substitution

    Returns:
        PriceResolution with either ``price`` or ``error`` set
    """
    result = PriceResolution(rounding_rule=rule.rounding, source_vendor=selected.vendor)
    try:
        return _resolve(rule, selected, others, result)
    except InvalidOperation:
        # figures too large to carry to the cent
        return result.fail(
            PricingErrorKind.INVALID_PARAMETER,
            f"Figures from {selected.vendor} are out of range for pricing",
        )


def _resolve(
    rule: PricingRule,
    selected: PricePoint,
    others: Iterable[PricePoint],
    result: PriceResolution,
) -> PriceResolution:
    primary = rule.primary

    problem = primary.validate()
    if problem:
        return result.fail(PricingErrorKind.INVALID_PARAMETER, problem)

    price = _evaluate(primary, selected, result, "Primary")
    strategy_used = primary.name

    if price is None and rule.use_cross_vendor_fallback and primary.uses_cross_vendor:
        sibling = max_cross_vendor_figure(primary.required_field, others)
        if sibling is not None:
            price = _evaluate(primary, sibling, result, "Cross-Vendor")
            strategy_used = f"{primary.name}_cross_vendor"
            result.source_vendor = sibling.vendor
        else:
            result.add_trace("Cross-Vendor", f"No other vendor publishes {primary.required_field.upper()}")

    if price is None:
        fallback = rule.fallback
        if fallback is None:
            return result.fail(
                PricingErrorKind.MISSING_REQUIRED_INPUT,
                f"{primary.required_field.upper()} required by {primary.name} is not available",
            )
        problem = fallback.validate()
        if problem:
            return result.fail(PricingErrorKind.INVALID_PARAMETER, problem)
        price = _evaluate(fallback, selected, result, "Fallback")
        if price is None:
            return result.fail(
                PricingErrorKind.NO_APPLICABLE_STRATEGY,
                f"Neither {primary.name} nor fallback {fallback.name} has its required input",
            )
        strategy_used = f"{fallback.name}_fallback"
        result.source_vendor = selected.vendor

    if price <= 0:
        return result.fail(PricingErrorKind.NON_POSITIVE_PRICE, f"Computed price {_money(price)} is not positive")

    rounded = apply_rounding(price, rule.rounding)
    if rounded <= 0:
        return result.fail(
            PricingErrorKind.NON_POSITIVE_PRICE,
            f"Rounding {rule.rounding.value} turns {_money(price)} into {_money(rounded)}",
        )

    result.base_price = price.quantize(CENT, rounding=ROUND_HALF_UP)
    result.price = rounded
    result.strategy_used = strategy_used
    result.add_trace("Rounding", f"Applied {rule.rounding.value}", _money(rounded))
    return result
