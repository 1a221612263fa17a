#!/usr/bin/env python
"""
Batch pricing job - prices the whole price-point catalog.

Usage:
    python scripts/price_catalog.py [--organization ORG] [--vendor VENDOR] [--output PATH]
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from retail_pricing.config.settings import get_settings
from retail_pricing.engine import PricingEngine
from retail_pricing.services.pricing_config_service import PricingConfigService
from retail_pricing.utils.logger import setup_logging


logger = logging.getLogger("price_catalog")


def main():
    parser = argparse.ArgumentParser(description="Price every product in the price point catalog")
    parser.add_argument('--organization', help="Use this organization's default configuration")
    parser.add_argument('--vendor', help="Only price products supplied by this vendor")
    parser.add_argument('--output', type=Path, help="CSV file to write (default: data/outputs/priced_catalog.csv)")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)

    print("=" * 60)
    print("RETAIL PRICING BATCH JOB")
    print("=" * 60)

    try:
        engine = PricingEngine(settings)
    except (FileNotFoundError, ValueError) as e:
        print(f"\n❌ {e}")
        sys.exit(1)

    rule = PricingConfigService(settings.pricing_store).effective_rule(args.organization)
    logger.info("Pricing with rule %s", rule.to_record())

    priced = engine.price_catalog(rule, vendor=args.vendor)
    output = args.output or settings.priced_catalog_csv
    output.parent.mkdir(parents=True, exist_ok=True)
    priced.to_csv(output, index=False)

    summary = engine.summarize(priced)
    print()
    print("Summary:")
    print(f"  Price points: {summary['total']}")
    print(f"  Resolved: {summary['resolved']}")
    print(f"  Failed: {summary['failed']}")
    for strategy, count in summary['by_strategy'].items():
        print(f"    {strategy}: {count}")
    for kind, count in summary['by_error'].items():
        print(f"    {kind}: {count}")
    print()
    print(f"✅ Written to {output}")


if __name__ == "__main__":
    main()
