"""
Pricing Engine - prices catalog products from vendor price points.

Loads the price-point catalog (one row per SKU and vendor) and runs the
rule resolver for a single product or the whole catalog:
1. Look up the selected vendor's price point for the SKU
2. Collect the other vendors carrying the SKU for cross-vendor substitution
3. Resolve the price with the configured rule
"""
import logging
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from .models import PRICE_FIELDS, PricePoint, PriceResolution, PricingErrorKind, PricingRule, to_decimal
from .resolver import resolve_price


logger = logging.getLogger(__name__)

CATALOG_COLUMNS = ['sku', 'vendor', 'cost', 'map', 'msrp']


def _clean_figure(value, sku: str, vendor: str, column: str) -> Optional[str]:
    """Keep a parseable figure as text; anything else is treated as not published."""
    if value is None or pd.isna(value):
        return None
    try:
        parsed = to_decimal(value)
    except ValueError:
        logger.warning("Ignoring %s %r for SKU %s from %s: not a number", column, value, sku, vendor)
        return None
    if parsed is None:
        if str(value).strip():
            logger.warning("Ignoring %s %r for SKU %s from %s: not a finite number", column, value, sku, vendor)
        return None
    return str(value).strip()


class PricingEngine:
    """
    Batch pricing over the price-point catalog.

    The catalog is read once; call reload_data() after the file changes.
    """

    def __init__(self, settings: Optional[Settings] = None, catalog: Optional[pd.DataFrame] = None):
        """Initialize engine with the price-point catalog (from disk unless given)."""
        self.settings = settings or get_settings()

        if catalog is None:
            catalog_path = self.settings.price_points_csv
            if not catalog_path.exists():
                raise FileNotFoundError(
                    f"Price point catalog not found at {catalog_path}. "
                    "Export vendor price points to this file first."
                )
            catalog = pd.read_csv(catalog_path, dtype=str)
            logger.info("Loaded price point catalog from %s", catalog_path)

        self.catalog = self._normalize(catalog)
        logger.info(
            "Catalog holds %d price points for %d SKUs",
            len(self.catalog), self.catalog['sku'].nunique()
        )

    @staticmethod
    def _normalize(catalog: pd.DataFrame) -> pd.DataFrame:
        """Lower-case headers, strip identifiers and require the catalog columns."""
        df = catalog.copy()
        df.columns = [str(c).strip().lower() for c in df.columns]

        missing = [c for c in ('sku', 'vendor') if c not in df.columns]
        if missing:
            raise ValueError(f"Price point catalog is missing columns: {', '.join(missing)}")

        for col in PRICE_FIELDS:
            if col not in df.columns:
                df[col] = None

        df['sku'] = df['sku'].astype(str).str.strip()
        df['vendor'] = df['vendor'].astype(str).str.strip()
        for col in PRICE_FIELDS:
            df[col] = [
                _clean_figure(value, sku, vendor, col)
                for value, sku, vendor in zip(df[col], df['sku'], df['vendor'])
            ]
        df = df.drop_duplicates(subset=['sku', 'vendor'], keep='first')
        return df[CATALOG_COLUMNS].reset_index(drop=True)

    def reload_data(self):
        """Reload the catalog from disk."""
        self.__init__(self.settings)

    def price_points(self, sku: str) -> list[PricePoint]:
        """All vendors' price points for a SKU."""
        rows = self.catalog[self.catalog['sku'] == str(sku).strip()]
        return [
            PricePoint.from_values(
                vendor=row['vendor'],
                cost=None if pd.isna(row['cost']) else row['cost'],
                map=None if pd.isna(row['map']) else row['map'],
                msrp=None if pd.isna(row['msrp']) else row['msrp'],
            )
            for _, row in rows.iterrows()
        ]

    def price_product(self, rule: PricingRule, sku: str, vendor: str) -> Optional[PriceResolution]:
        """
        Resolve the price of one SKU as supplied by ``vendor``.

        Returns None when the vendor does not carry the SKU.
        """
        points = self.price_points(sku)
        selected = next((p for p in points if p.vendor == vendor), None)
        if selected is None:
            return None

        others = [p for p in points if p.vendor != vendor]
        return resolve_price(rule, selected, others)

    def price_catalog(self, rule: PricingRule, vendor: Optional[str] = None) -> pd.DataFrame:
        """
        Resolve every (SKU, vendor) pair in the catalog, optionally for one vendor.

        Failed resolutions are kept with their error kind so the caller can
        decide whether to omit or flag them.
        """
        rows = []
        skus = self.catalog['sku'] if vendor is None else self.catalog.loc[self.catalog['vendor'] == vendor, 'sku']

        for sku in skus.unique():
            points = self.price_points(sku)
            for selected in points:
                if vendor is not None and selected.vendor != vendor:
                    continue
                others = [p for p in points if p.vendor != selected.vendor]
                resolution = resolve_price(rule, selected, others)
                rows.append({
                    'sku': sku,
                    'vendor': selected.vendor,
                    'price': float(resolution.price) if resolution.ok else None,
                    'base_price': float(resolution.base_price) if resolution.base_price is not None else None,
                    'strategy_used': resolution.strategy_used,
                    'source_vendor': resolution.source_vendor,
                    'error': resolution.error.kind.value if resolution.error else None,
                    'error_message': resolution.error.message if resolution.error else None,
                })

        result = pd.DataFrame(rows, columns=[
            'sku', 'vendor', 'price', 'base_price', 'strategy_used',
            'source_vendor', 'error', 'error_message',
        ])
        failed = result['error'].notna().sum()
        if failed:
            by_kind = result['error'].value_counts().to_dict()
            logger.warning("%d of %d catalog prices could not be resolved: %s", failed, len(result), by_kind)
        return result

    def summarize(self, priced: pd.DataFrame) -> dict:
        """Counts of resolved and failed prices by strategy and error kind."""
        return {
            'total': len(priced),
            'resolved': int(priced['price'].notna().sum()),
            'failed': int(priced['error'].notna().sum()),
            'by_strategy': priced['strategy_used'].dropna().value_counts().to_dict(),
            'by_error': {
                kind.value: int((priced['error'] == kind.value).sum())
                for kind in PricingErrorKind
                if (priced['error'] == kind.value).any()
            },
        }
