"""
Pricing API - FastAPI router for pricing rules and price resolution.
"""
from dataclasses import asdict
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..engine import PricePoint, PricingEngine, PricingRule, RuleConfigError, resolve_price
from ..engine.rounding import SAMPLE_PRICE, rounding_examples
from ..services.pricing_config_service import (
    ConfigNotFoundError,
    ConfigValidationError,
    PricingConfig,
    PricingConfigService,
    validate_rule_record,
)
from .state import get_config_service, get_engine

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Pydantic models for API
class RuleRecord(CamelModel):
    """Flat pricing rule as edited by administrators."""
    primary_strategy: str = "msrp"
    markup_percentage: Optional[Decimal] = None
    margin_percentage: Optional[Decimal] = None
    premium_amount: Optional[Decimal] = None
    discount_percentage: Optional[Decimal] = None
    rounding_rule: str = "none"
    fallback_strategy: Optional[str] = "map"
    fallback_markup_percentage: Optional[Decimal] = None
    use_cross_vendor_fallback: bool = False


class ConfigCreate(CamelModel):
    """Request model for creating a pricing configuration."""
    organization: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True
    rule: RuleRecord = RuleRecord()


class ConfigUpdate(CamelModel):
    """Request model for updating a pricing configuration."""
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    rule: Optional[RuleRecord] = None


class ConfigResponse(CamelModel):
    """Response model for a pricing configuration."""
    config_id: int
    organization: str
    name: str
    description: Optional[str]
    is_default: bool
    is_active: bool
    rule: dict
    created_at: Optional[str]
    updated_at: Optional[str]


class ValidationResponse(CamelModel):
    valid: bool
    errors: list[str]
    warnings: list[str]


class PricePointIn(CamelModel):
    vendor: str
    cost: Optional[Decimal] = None
    map: Optional[Decimal] = None
    msrp: Optional[Decimal] = None

    def to_price_point(self) -> PricePoint:
        return PricePoint(vendor=self.vendor, cost=self.cost, map=self.map, msrp=self.msrp)


class ResolveRequest(CamelModel):
    """Price one product; without ``rule`` the organization's effective rule is used."""
    selected: PricePointIn
    others: list[PricePointIn] = []
    rule: Optional[RuleRecord] = None
    organization: Optional[str] = None


def _record(model: BaseModel, exclude_unset: bool = False) -> dict:
    return model.model_dump(by_alias=True, exclude_unset=exclude_unset, mode="json")


def _config_response(config: PricingConfig) -> ConfigResponse:
    return ConfigResponse(**asdict(config))


# Default rule

@router.get("/default-rule")
async def get_default_rule(service: PricingConfigService = Depends(get_config_service)):
    """Get the admin default pricing rule."""
    return service.get_default_rule_record()


@router.put("/default-rule")
async def update_default_rule(rule: RuleRecord, service: PricingConfigService = Depends(get_config_service)):
    """Update the admin default pricing rule (only fields present in the body)."""
    try:
        return service.update_default_rule(_record(rule, exclude_unset=True))
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})


@router.post("/default-rule/reset")
async def reset_default_rule(service: PricingConfigService = Depends(get_config_service)):
    """Reset the default pricing rule to factory defaults."""
    return service.reset_default_rule()


# Configurations

@router.get("/configurations", response_model=list[ConfigResponse])
async def list_configurations(
    organization: Optional[str] = None,
    include_inactive: bool = True,
    service: PricingConfigService = Depends(get_config_service),
):
    """List pricing configurations."""
    return [_config_response(c) for c in service.list_configs(organization, include_inactive)]


@router.post("/configurations/validate", response_model=ValidationResponse)
async def validate_configuration(rule: RuleRecord):
    """Validate a rule without saving."""
    result = validate_rule_record(_record(rule))
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)


@router.get("/configurations/{config_id}", response_model=ConfigResponse)
async def get_configuration(config_id: int, service: PricingConfigService = Depends(get_config_service)):
    """Get a single configuration by ID."""
    config = service.get_config(config_id)
    if not config:
        raise HTTPException(status_code=404, detail=f"Pricing configuration {config_id} not found")
    return _config_response(config)


@router.post("/configurations", response_model=ConfigResponse)
async def create_configuration(data: ConfigCreate, service: PricingConfigService = Depends(get_config_service)):
    """Create a new pricing configuration."""
    config = PricingConfig(
        config_id=0,
        organization=data.organization,
        name=data.name,
        description=data.description,
        is_default=data.is_default,
        is_active=data.is_active,
        rule=_record(data.rule),
    )
    try:
        return _config_response(service.create_config(config))
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})


@router.patch("/configurations/{config_id}", response_model=ConfigResponse)
async def update_configuration(
    config_id: int,
    updates: ConfigUpdate,
    service: PricingConfigService = Depends(get_config_service),
):
    """Update an existing configuration."""
    update_dict = updates.model_dump(exclude_unset=True)
    if updates.rule is not None:
        update_dict["rule"] = _record(updates.rule, exclude_unset=True)
    try:
        return _config_response(service.update_config(config_id, update_dict))
    except ConfigNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})


@router.delete("/configurations/{config_id}")
async def delete_configuration(config_id: int, service: PricingConfigService = Depends(get_config_service)):
    """Delete a configuration."""
    try:
        service.delete_config(config_id)
        return {"success": True, "message": f"Pricing configuration {config_id} deleted"}
    except ConfigNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/configurations/{config_id}/set-default", response_model=ConfigResponse)
async def set_default_configuration(config_id: int, service: PricingConfigService = Depends(get_config_service)):
    """Make a configuration its organization's default."""
    try:
        return _config_response(service.set_default(config_id))
    except ConfigNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Resolution

@router.post("/resolve")
async def resolve(request: ResolveRequest, service: PricingConfigService = Depends(get_config_service)):
    """Resolve a retail price; pricing failures come back in ``error``."""
    try:
        if request.rule is not None:
            rule = PricingRule.from_record(_record(request.rule))
        else:
            rule = service.effective_rule(request.organization)
    except RuleConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    resolution = resolve_price(
        rule,
        request.selected.to_price_point(),
        [p.to_price_point() for p in request.others],
    )
    return resolution.to_dict()


@router.get("/rounding-examples")
async def get_rounding_examples(price: Decimal = SAMPLE_PRICE):
    """Every rounding rule applied to a sample price."""
    if price <= 0:
        raise HTTPException(status_code=400, detail="Price must be positive")
    return {"price": f"{price:.2f}", "examples": rounding_examples(price)}


@router.get("/catalog/{sku}")
async def price_catalog_item(
    sku: str,
    organization: Optional[str] = None,
    service: PricingConfigService = Depends(get_config_service),
    engine: PricingEngine = Depends(get_engine),
):
    """Price a SKU for every vendor that carries it."""
    points = engine.price_points(sku)
    if not points:
        raise HTTPException(status_code=404, detail=f"SKU '{sku}' not found in price point catalog")

    rule = service.effective_rule(organization)
    return {
        "sku": sku,
        "rule": rule.to_record(),
        "vendors": {
            point.vendor: resolve_price(rule, point, [p for p in points if p is not point]).to_dict()
            for point in points
        },
    }
