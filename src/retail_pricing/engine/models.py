"""
Data models for the pricing rule resolver.

Strategies form a closed tagged union: each variant carries exactly the
parameter it needs, so a parameter left over from a previously selected
strategy has nowhere to live once the flat record is converted.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import ClassVar, Optional, Union

from .rounding import RoundingRule


HUNDRED = Decimal("100")
MAX_MARKUP_PERCENTAGE = Decimal("1000")

PRICE_FIELDS = ("cost", "map", "msrp")


class RuleConfigError(ValueError):
    """A flat rule record cannot be turned into a PricingRule."""


def to_decimal(value) -> Optional[Decimal]:
    """Parse a numeric field; blank, missing, NaN and infinite values become None."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
        if not value:
            return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    return result if result.is_finite() else None


def to_bool(value) -> bool:
    """Parse a flag that may arrive as a bool, a number or text such as 'false'."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class PricePoint:
    """Figures one vendor publishes for one product."""
    vendor: str
    cost: Optional[Decimal] = None
    map: Optional[Decimal] = None
    msrp: Optional[Decimal] = None

    def figure(self, name: str) -> Optional[Decimal]:
        """Return a published figure, or None when absent or not positive."""
        value = getattr(self, name)
        if value is None or value <= 0:
            return None
        return value

    @classmethod
    def from_values(cls, vendor: str, cost=None, map=None, msrp=None) -> 'PricePoint':
        return cls(
            vendor=str(vendor),
            cost=to_decimal(cost),
            map=to_decimal(map),
            msrp=to_decimal(msrp),
        )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Strategy:
    name: ClassVar[str] = ""
    required_field: ClassVar[str] = ""

    def validate(self) -> Optional[str]:
        """Return a message when the parameter is out of range."""
        return None

    def apply(self, base: Decimal) -> Decimal:
        return base

    @property
    def uses_cross_vendor(self) -> bool:
        return self.required_field in ("map", "msrp")


@dataclass(frozen=True)
class Msrp(Strategy):
    name: ClassVar[str] = "msrp"
    required_field: ClassVar[str] = "msrp"


@dataclass(frozen=True)
class Map(Strategy):
    name: ClassVar[str] = "map"
    required_field: ClassVar[str] = "map"


@dataclass(frozen=True)
class CostMarkup(Strategy):
    markup_percentage: Decimal
    name: ClassVar[str] = "cost_markup"
    required_field: ClassVar[str] = "cost"

    def validate(self) -> Optional[str]:
        if self.markup_percentage < 0 or self.markup_percentage >= MAX_MARKUP_PERCENTAGE:
            return f"Markup percentage must be between 0 and {MAX_MARKUP_PERCENTAGE}, got {self.markup_percentage}"
        return None

    def apply(self, base: Decimal) -> Decimal:
        return base * (1 + self.markup_percentage / HUNDRED)


@dataclass(frozen=True)
class CostMargin(Strategy):
    margin_percentage: Decimal
    name: ClassVar[str] = "cost_margin"
    required_field: ClassVar[str] = "cost"

    def validate(self) -> Optional[str]:
        if self.margin_percentage < 0 or self.margin_percentage >= HUNDRED:
            return f"Margin percentage must be at least 0 and below 100, got {self.margin_percentage}"
        return None

    def apply(self, base: Decimal) -> Decimal:
        return base / (1 - self.margin_percentage / HUNDRED)


@dataclass(frozen=True)
class MapPremium(Strategy):
    premium_amount: Decimal
    name: ClassVar[str] = "map_premium"
    required_field: ClassVar[str] = "map"

    def validate(self) -> Optional[str]:
        if self.premium_amount < 0:
            return f"Premium amount cannot be negative, got {self.premium_amount}"
        return None

    def apply(self, base: Decimal) -> Decimal:
        return base + self.premium_amount


@dataclass(frozen=True)
class MsrpDiscount(Strategy):
    discount_percentage: Decimal
    name: ClassVar[str] = "msrp_discount"
    required_field: ClassVar[str] = "msrp"

    def validate(self) -> Optional[str]:
        if self.discount_percentage < 0 or self.discount_percentage > HUNDRED:
            return f"Discount percentage must be between 0 and 100, got {self.discount_percentage}"
        return None

    def apply(self, base: Decimal) -> Decimal:
        return base * (1 - self.discount_percentage / HUNDRED)


PrimaryStrategy = Union[Msrp, Map, CostMarkup, CostMargin, MapPremium, MsrpDiscount]
FallbackStrategy = Union[Map, Msrp, CostMarkup, CostMargin]

# strategy value -> (variant, record key holding its parameter)
PRIMARY_STRATEGIES = {
    "msrp": (Msrp, None),
    "map": (Map, None),
    "cost_markup": (CostMarkup, "markupPercentage"),
    "cost_margin": (CostMargin, "marginPercentage"),
    "map_premium": (MapPremium, "premiumAmount"),
    "msrp_discount": (MsrpDiscount, "discountPercentage"),
}

FALLBACK_STRATEGIES = {
    "map": (Map, None),
    "msrp": (Msrp, None),
    "cost_markup": (CostMarkup, "fallbackMarkupPercentage"),
    "cost_margin": (CostMargin, "fallbackMarkupPercentage"),
}

PARAMETER_KEYS = (
    "markupPercentage",
    "marginPercentage",
    "premiumAmount",
    "discountPercentage",
    "fallbackMarkupPercentage",
)


def _build_strategy(table: dict, value: str, record: dict, label: str):
    if value not in table:
        raise RuleConfigError(f"Unknown {label} '{value}'")
    variant, param_key = table[value]
    if param_key is None:
        return variant()
    try:
        param = to_decimal(record.get(param_key))
    except ValueError as e:
        raise RuleConfigError(f"{param_key}: {e}")
    if param is None:
        raise RuleConfigError(f"{param_key} is required for {label} '{value}'")
    return variant(param)


def _strategy_param(strategy: Optional[Strategy]) -> Optional[Decimal]:
    for attr in ("markup_percentage", "margin_percentage", "premium_amount", "discount_percentage"):
        if hasattr(strategy, attr):
            return getattr(strategy, attr)
    return None


@dataclass(frozen=True)
class PricingRule:
    """Configured pricing rule: primary strategy, fallback, cross-vendor flag and rounding."""
    primary: PrimaryStrategy = field(default_factory=Msrp)
    rounding: RoundingRule = RoundingRule.NONE
    fallback: Optional[FallbackStrategy] = field(default_factory=Map)
    use_cross_vendor_fallback: bool = False

    @classmethod
    def from_record(cls, record: dict) -> 'PricingRule':
        """
        Build a rule from its flat record (camelCase keys).

        Only the parameter owned by the selected strategy is read; stale
        parameters from other strategies are ignored.
        """
        record = record or {}
        primary_value = record.get("primaryStrategy") or "msrp"
        primary = _build_strategy(PRIMARY_STRATEGIES, primary_value, record, "primary strategy")

        if "fallbackStrategy" in record:
            fallback_value = record.get("fallbackStrategy") or "none"
        else:
            fallback_value = "map"
        fallback = None
        if fallback_value != "none":
            fallback = _build_strategy(FALLBACK_STRATEGIES, fallback_value, record, "fallback strategy")

        try:
            rounding = RoundingRule(record.get("roundingRule") or RoundingRule.NONE.value)
        except ValueError:
            raise RuleConfigError(f"Unknown rounding rule '{record.get('roundingRule')}'")

        return cls(
            primary=primary,
            rounding=rounding,
            fallback=fallback,
            use_cross_vendor_fallback=to_bool(record.get("useCrossVendorFallback", False)),
        )

    def to_record(self) -> dict:
        """Flat record with unrelated parameters left empty."""
        record = {
            "primaryStrategy": self.primary.name,
            "markupPercentage": None,
            "marginPercentage": None,
            "premiumAmount": None,
            "discountPercentage": None,
            "roundingRule": self.rounding.value,
            "fallbackStrategy": self.fallback.name if self.fallback else "none",
            "fallbackMarkupPercentage": None,
            "useCrossVendorFallback": self.use_cross_vendor_fallback,
        }
        param_key = PRIMARY_STRATEGIES[self.primary.name][1]
        if param_key:
            record[param_key] = str(_strategy_param(self.primary))
        if self.fallback is not None and FALLBACK_STRATEGIES[self.fallback.name][1]:
            record["fallbackMarkupPercentage"] = str(_strategy_param(self.fallback))
        return record


DEFAULT_RULE_RECORD = PricingRule().to_record()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class PricingErrorKind(str, Enum):
    MISSING_REQUIRED_INPUT = "MissingRequiredInput"
    NO_APPLICABLE_STRATEGY = "NoApplicableStrategy"
    NON_POSITIVE_PRICE = "NonPositivePrice"
    INVALID_PARAMETER = "InvalidParameter"


@dataclass(frozen=True)
class PricingError:
    kind: PricingErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass
class PriceResolution:
    """Outcome of resolving one product's price; holds either a price or an error."""
    price: Optional[Decimal] = None
    error: Optional[PricingError] = None
    base_price: Optional[Decimal] = None
    strategy_used: Optional[str] = None
    source_vendor: Optional[str] = None
    rounding_rule: RoundingRule = RoundingRule.NONE
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.price is not None

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the resolution trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def fail(self, kind: PricingErrorKind, message: str) -> 'PriceResolution':
        self.error = PricingError(kind=kind, message=message)
        self.price = None
        self.add_trace("Error", message, kind.value)
        return self

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "price": f"{self.price:.2f}" if self.price is not None else None,
            "basePrice": f"{self.base_price:.2f}" if self.base_price is not None else None,
            "strategyUsed": self.strategy_used,
            "sourceVendor": self.source_vendor,
            "roundingRule": self.rounding_rule.value,
            "error": {"kind": self.error.kind.value, "message": self.error.message} if self.error else None,
            "trace": [{"step": t.step, "description": t.description, "value": t.value} for t in self.trace],
        }
