"""Engine subpackage - pricing rule model, resolver and catalog pricing."""
from .models import (
    PricePoint,
    PriceResolution,
    PricingError,
    PricingErrorKind,
    PricingRule,
    RuleConfigError,
    Msrp,
    Map,
    CostMarkup,
    CostMargin,
    MapPremium,
    MsrpDiscount,
)
from .rounding import RoundingRule, apply_rounding, rounding_examples
from .resolver import resolve_price
from .pricing_engine import PricingEngine

__all__ = [
    'PricePoint', 'PriceResolution', 'PricingError', 'PricingErrorKind',
    'PricingRule', 'RuleConfigError',
    'Msrp', 'Map', 'CostMarkup', 'CostMargin', 'MapPremium', 'MsrpDiscount',
    'RoundingRule', 'apply_rounding', 'rounding_examples',
    'resolve_price', 'PricingEngine',
]
