"""
Shared service instances for the API routers.

Routers receive these through FastAPI dependencies so tests can swap in
services backed by temporary files.
"""
import logging
from functools import lru_cache

from fastapi import HTTPException

from ..config.settings import get_settings
from ..engine import PricingEngine
from ..services.mapping_service import MappingService
from ..services.pricing_config_service import PricingConfigService


logger = logging.getLogger(__name__)


@lru_cache()
def get_config_service() -> PricingConfigService:
    return PricingConfigService(get_settings().pricing_store)


@lru_cache()
def get_mapping_service() -> MappingService:
    return MappingService(get_settings().mappings_store)


_engine = None


def get_engine() -> PricingEngine:
    """Load the price-point catalog on first use."""
    global _engine
    if _engine is None:
        try:
            _engine = PricingEngine(get_settings())
        except FileNotFoundError as e:
            logger.error("Pricing engine unavailable: %s", e)
            raise HTTPException(status_code=503, detail=str(e))
    return _engine
