"""
Pricing Config Service - persisted pricing rules.

Holds the admin-level default rule and named per-organization pricing
configurations in one JSON file. Writes happen only after validation, so a
rejected update never changes what is stored. Last write wins.
"""
import json
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.models import (
    DEFAULT_RULE_RECORD,
    FALLBACK_STRATEGIES,
    PARAMETER_KEYS,
    PRIMARY_STRATEGIES,
    PricingRule,
    RuleConfigError,
    to_bool,
    to_decimal,
)
from ..engine.rounding import RoundingRule


logger = logging.getLogger(__name__)

RULE_KEYS = tuple(DEFAULT_RULE_RECORD.keys())

PARAMETER_LABELS = {
    "markupPercentage": "Markup percentage",
    "marginPercentage": "Margin percentage",
    "premiumAmount": "Premium amount",
    "discountPercentage": "Discount percentage",
    "fallbackMarkupPercentage": "Fallback markup percentage",
}


class ConfigNotFoundError(ValueError):
    """No pricing configuration with the requested ID."""


class ConfigValidationError(ValueError):
    """A rule or configuration failed validation; nothing was written."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


def normalize_rule_record(record: Optional[dict]) -> dict:
    """Complete a partial rule record with defaults, dropping unknown keys."""
    normalized = dict(DEFAULT_RULE_RECORD)
    for key, value in (record or {}).items():
        if key in RULE_KEYS:
            normalized[key] = value
    for key in PARAMETER_KEYS:
        value = normalized.get(key)
        if value is not None and not isinstance(value, str):
            normalized[key] = str(value)
    normalized["fallbackStrategy"] = normalized.get("fallbackStrategy") or "none"
    normalized["useCrossVendorFallback"] = to_bool(normalized.get("useCrossVendorFallback"))
    return normalized


@dataclass
class PricingConfig:
    """A named pricing configuration belonging to an organization."""
    config_id: int
    organization: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True
    rule: dict = field(default_factory=lambda: dict(DEFAULT_RULE_RECORD))
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_pricing_rule(self) -> PricingRule:
        return PricingRule.from_record(self.rule)

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingConfig':
        return cls(
            config_id=int(data['config_id']),
            organization=str(data.get('organization', '')),
            name=data.get('name', ''),
            description=data.get('description') or None,
            is_default=bool(data.get('is_default', False)),
            is_active=bool(data.get('is_active', True)),
            rule=normalize_rule_record(data.get('rule')),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )


@dataclass
class ValidationResult:
    """Result of rule validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_rule_record(record: dict) -> ValidationResult:
    """Check a flat rule record before it is stored."""
    result = ValidationResult(valid=True)
    record = normalize_rule_record(record)

    primary = record.get("primaryStrategy")
    fallback = record.get("fallbackStrategy") or "none"
    owned = set()

    if primary not in PRIMARY_STRATEGIES:
        result.errors.append(f"Unknown primary strategy '{primary}'")
    else:
        param_key = PRIMARY_STRATEGIES[primary][1]
        if param_key:
            owned.add(param_key)

    if fallback != "none" and fallback not in FALLBACK_STRATEGIES:
        result.errors.append(f"Unknown fallback strategy '{fallback}'")
    elif fallback != "none" and FALLBACK_STRATEGIES[fallback][1]:
        owned.add(FALLBACK_STRATEGIES[fallback][1])

    if record.get("roundingRule") not in {r.value for r in RoundingRule}:
        result.errors.append(f"Unknown rounding rule '{record.get('roundingRule')}'")

    for key in PARAMETER_KEYS:
        try:
            value = to_decimal(record.get(key))
        except ValueError:
            result.errors.append(f"{PARAMETER_LABELS[key]} must be a number")
            continue
        if key in owned and value is None:
            strategy = primary if key != "fallbackMarkupPercentage" else f"fallback {fallback}"
            result.errors.append(f"{PARAMETER_LABELS[key]} is required for {strategy} strategy")
        elif key not in owned and value is not None:
            result.warnings.append(f"{PARAMETER_LABELS[key]} is ignored by the selected strategies")

    if not result.errors:
        rule = PricingRule.from_record(record)
        for strategy in (rule.primary, rule.fallback):
            problem = strategy.validate() if strategy is not None else None
            if problem:
                result.errors.append(problem)

    result.valid = not result.errors
    return result


class PricingConfigService:
    """Service for managing the default pricing rule and pricing configurations."""

    def __init__(self, store_path: Path):
        self.store_path = store_path

    # -- storage -------------------------------------------------------------

    def _load(self) -> dict:
        if not self.store_path.exists():
            return {"default_rule": None, "configurations": []}
        with open(self.store_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        data.setdefault("default_rule", None)
        data.setdefault("configurations", [])
        return data

    def _save(self, data: dict):
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.store_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def _write_configs(self, configs: list[PricingConfig]):
        data = self._load()
        data["configurations"] = [asdict(c) for c in configs]
        self._save(data)

    # -- default rule --------------------------------------------------------

    def get_default_rule_record(self) -> dict:
        """The admin default rule as a flat record."""
        return normalize_rule_record(self._load().get("default_rule"))

    def get_default_rule(self) -> PricingRule:
        return PricingRule.from_record(self.get_default_rule_record())

    def update_default_rule(self, updates: dict) -> dict:
        """Merge ``updates`` into the default rule; raises ConfigValidationError."""
        record = self.get_default_rule_record()
        record.update({k: v for k, v in updates.items() if k in RULE_KEYS})
        record = normalize_rule_record(record)

        validation = validate_rule_record(record)
        if not validation.valid:
            raise ConfigValidationError(validation.errors)

        data = self._load()
        data["default_rule"] = record
        self._save(data)
        logger.info("Default pricing rule updated: %s", record["primaryStrategy"])
        return record

    def reset_default_rule(self) -> dict:
        data = self._load()
        data["default_rule"] = None
        self._save(data)
        logger.info("Default pricing rule reset")
        return dict(DEFAULT_RULE_RECORD)

    # -- configurations ------------------------------------------------------

    def list_configs(self, organization: Optional[str] = None, include_inactive: bool = True) -> list[PricingConfig]:
        """List configurations, optionally for one organization."""
        configs = [PricingConfig.from_dict(c) for c in self._load()["configurations"]]
        if organization is not None:
            configs = [c for c in configs if c.organization == organization]
        if not include_inactive:
            configs = [c for c in configs if c.is_active]
        return configs

    def get_config(self, config_id: int) -> Optional[PricingConfig]:
        """Get a single configuration by ID."""
        for config in self.list_configs():
            if config.config_id == config_id:
                return config
        return None

    def validate_config(self, config: PricingConfig) -> ValidationResult:
        """Validate a configuration before saving."""
        result = validate_rule_record(config.rule)
        if not config.name or not config.name.strip():
            result.errors.insert(0, "Name is required")
        if not config.organization:
            result.errors.insert(0, "Organization is required")

        for existing in self.list_configs(config.organization):
            if existing.config_id != config.config_id and existing.name == config.name:
                result.warnings.append(f"Another configuration is already named '{config.name}'")

        result.valid = not result.errors
        return result

    def create_config(self, config: PricingConfig) -> PricingConfig:
        """Create a new configuration; the first one for an organization becomes its default."""
        config.rule = normalize_rule_record(config.rule)
        validation = self.validate_config(config)
        if not validation.valid:
            raise ConfigValidationError(validation.errors)

        configs = self.list_configs()
        config.config_id = max((c.config_id for c in configs), default=0) + 1
        config.created_at = config.updated_at = _now()

        siblings = [c for c in configs if c.organization == config.organization]
        if not siblings:
            config.is_default = True
        if config.is_default:
            for c in siblings:
                c.is_default = False

        configs.append(config)
        self._write_configs(configs)
        logger.info("Created pricing configuration %d for %s", config.config_id, config.organization)
        return config

    def update_config(self, config_id: int, updates: dict) -> PricingConfig:
        """Update an existing configuration."""
        configs = self.list_configs()
        index = next((i for i, c in enumerate(configs) if c.config_id == config_id), None)
        if index is None:
            raise ConfigNotFoundError(f"Pricing configuration {config_id} not found")

        config = PricingConfig.from_dict(asdict(configs[index]))
        for key, value in updates.items():
            if key == 'rule':
                merged = dict(config.rule)
                merged.update(value or {})
                config.rule = normalize_rule_record(merged)
            elif key in ('name', 'description', 'is_active'):
                setattr(config, key, value)

        validation = self.validate_config(config)
        if not validation.valid:
            raise ConfigValidationError(validation.errors)

        config.updated_at = _now()
        configs[index] = config
        self._write_configs(configs)
        return config

    def delete_config(self, config_id: int) -> bool:
        """Delete a configuration."""
        configs = self.list_configs()
        remaining = [c for c in configs if c.config_id != config_id]
        if len(remaining) == len(configs):
            raise ConfigNotFoundError(f"Pricing configuration {config_id} not found")
        self._write_configs(remaining)
        logger.info("Deleted pricing configuration %d", config_id)
        return True

    def set_default(self, config_id: int) -> PricingConfig:
        """Make a configuration its organization's default, clearing the previous one."""
        configs = self.list_configs()
        target = next((c for c in configs if c.config_id == config_id), None)
        if target is None:
            raise ConfigNotFoundError(f"Pricing configuration {config_id} not found")

        for c in configs:
            if c.organization == target.organization:
                c.is_default = c.config_id == config_id
                if c.is_default:
                    c.updated_at = _now()
        self._write_configs(configs)
        return target

    def effective_rule(self, organization: Optional[str] = None) -> PricingRule:
        """The organization's active default configuration, else the admin default rule."""
        if organization:
            for config in self.list_configs(organization, include_inactive=False):
                if config.is_default:
                    try:
                        return config.to_pricing_rule()
                    except RuleConfigError as e:
                        logger.error("Configuration %d is unusable (%s); using default rule", config.config_id, e)
                        break
        return self.get_default_rule()
