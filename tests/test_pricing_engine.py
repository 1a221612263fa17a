from decimal import Decimal

import pandas as pd
import pytest

from retail_pricing.config.settings import Settings
from retail_pricing.engine import Map, Msrp, MsrpDiscount, PricingEngine, PricingRule, RoundingRule


@pytest.fixture
def settings(tmp_path):
    return Settings.load(data_dir=tmp_path)


@pytest.fixture
def catalog():
    return pd.DataFrame([
        {'SKU': ' 1001 ', 'Vendor': 'Lipseys', 'Cost': '10.00', 'MAP': None, 'MSRP': '30.00'},
        {'SKU': '1001', 'Vendor': 'Sports South', 'Cost': '9.50', 'MAP': '22.00', 'MSRP': None},
        {'SKU': '1001', 'Vendor': 'Chattanooga', 'Cost': '9.75', 'MAP': '24.00', 'MSRP': '32.00'},
        {'SKU': '2002', 'Vendor': 'Lipseys', 'Cost': '5.00', 'MAP': None, 'MSRP': None},
    ])


@pytest.fixture
def engine(settings, catalog):
    return PricingEngine(settings, catalog=catalog)


def test_catalog_columns_normalized(engine):
    assert list(engine.catalog.columns) == ['sku', 'vendor', 'cost', 'map', 'msrp']
    assert set(engine.catalog['sku']) == {'1001', '2002'}


def test_price_points_for_sku(engine):
    points = {p.vendor: p for p in engine.price_points('1001')}
    assert set(points) == {'Lipseys', 'Sports South', 'Chattanooga'}
    assert points['Lipseys'].map is None
    assert points['Sports South'].map == Decimal('22.00')


def test_price_product_uses_siblings_for_cross_vendor(engine):
    rule = PricingRule(primary=Map(), fallback=None, use_cross_vendor_fallback=True)
    result = engine.price_product(rule, '1001', 'Lipseys')
    assert result.price == Decimal('24.00')
    assert result.source_vendor == 'Chattanooga'


def test_price_product_unknown_vendor(engine):
    assert engine.price_product(PricingRule(), '1001', 'Bill Hicks') is None


def test_price_catalog_keeps_failures(engine):
    rule = PricingRule(primary=MsrpDiscount(Decimal('10')), fallback=None, rounding=RoundingRule.UP_99)
    priced = engine.price_catalog(rule)

    assert len(priced) == 4
    rows = {(r.sku, r.vendor): r for r in priced.itertuples()}
    assert rows[('1001', 'Lipseys')].price == pytest.approx(27.99)
    assert rows[('1001', 'Chattanooga')].price == pytest.approx(28.99)
    assert rows[('2002', 'Lipseys')].error == 'MissingRequiredInput'
    assert pd.isna(rows[('2002', 'Lipseys')].price)


def test_price_catalog_for_one_vendor(engine):
    priced = engine.price_catalog(PricingRule(primary=Msrp()), vendor='Sports South')
    assert list(priced['vendor']) == ['Sports South']
    assert priced.iloc[0]['strategy_used'] == 'map_fallback'


def test_summarize(engine):
    priced = engine.price_catalog(PricingRule(primary=Msrp(), fallback=None))
    summary = engine.summarize(priced)
    assert summary['total'] == 4
    assert summary['resolved'] == 2
    assert summary['failed'] == 2
    assert summary['by_error'] == {'MissingRequiredInput': 2}


def test_unparseable_figures_are_treated_as_absent(settings, caplog):
    catalog = pd.DataFrame([
        {'sku': '1', 'vendor': 'Lipseys', 'cost': '4.00', 'map': 'N/A', 'msrp': '12.00'},
        {'sku': '1', 'vendor': 'Sports South', 'cost': 'call', 'map': 'inf', 'msrp': None},
        {'sku': '2', 'vendor': 'Lipseys', 'cost': '5.00', 'map': None, 'msrp': '20.00'},
    ])
    with caplog.at_level('WARNING'):
        engine = PricingEngine(settings, catalog=catalog)

    assert "'N/A' for SKU 1 from Lipseys" in caplog.text
    assert 'cost' in caplog.text and "'call'" in caplog.text

    priced = engine.price_catalog(PricingRule(primary=Msrp(), fallback=None))
    rows = {(r.sku, r.vendor): r for r in priced.itertuples()}
    assert len(rows) == 3
    assert rows[('1', 'Lipseys')].price == pytest.approx(12.00)
    assert rows[('2', 'Lipseys')].price == pytest.approx(20.00)
    assert rows[('1', 'Sports South')].error == 'MissingRequiredInput'

    point = engine.price_points('1')[0]
    assert point.map is None
    assert point.cost == Decimal('4.00')


def test_loads_catalog_from_disk(settings):
    settings.price_points_csv.write_text(
        "sku,vendor,cost,map,msrp\n3003,Lipseys,12.00,,20.00\n", encoding='utf-8'
    )
    engine = PricingEngine(settings)
    assert engine.price_product(PricingRule(), '3003', 'Lipseys').price == Decimal('20.00')


def test_missing_catalog_file(settings):
    with pytest.raises(FileNotFoundError):
        PricingEngine(settings)


def test_catalog_requires_sku_and_vendor(settings):
    with pytest.raises(ValueError, match='vendor'):
        PricingEngine(settings, catalog=pd.DataFrame([{'sku': '1', 'cost': '2'}]))
