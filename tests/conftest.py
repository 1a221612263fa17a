import os
import sys
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from retail_pricing.engine import PricePoint


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def point():
    """Build a price point: point('A', cost=10, map=25)."""
    def _point(vendor='Vendor A', cost=None, map=None, msrp=None):
        return PricePoint.from_values(vendor, cost, map, msrp)
    return _point
