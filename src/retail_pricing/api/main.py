import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from retail_pricing import __version__
from retail_pricing.config.settings import get_settings
from retail_pricing.api.pricing_api import router as pricing_router
from retail_pricing.api.mappings_api import router as mappings_router
from retail_pricing.utils.logger import setup_logging

setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Retail Pricing API",
    description="Pricing rule configuration, price resolution and vendor field-mapping contracts",
    version=__version__,
)

# Enable CORS for the admin frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pricing_router)
app.include_router(mappings_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Retail Pricing API Active"}


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    return {
        "version": __version__,
        "data_dir": str(settings.data_dir),
        "price_points_loaded": settings.price_points_csv.exists(),
        "pricing_store_exists": settings.pricing_store.exists(),
        "mappings_store_exists": settings.mappings_store.exists(),
    }
