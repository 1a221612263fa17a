import json

import pytest

from retail_pricing.engine import CostMarkup, Map, Msrp, PricingRule
from retail_pricing.services.pricing_config_service import (
    ConfigNotFoundError,
    ConfigValidationError,
    PricingConfig,
    PricingConfigService,
    validate_rule_record,
)


@pytest.fixture
def service(tmp_path):
    return PricingConfigService(tmp_path / 'pricing_configurations.json')


def new_config(organization='acme', name='Retail', **rule):
    return PricingConfig(config_id=0, organization=organization, name=name, rule=rule)


# Default rule

def test_default_rule_before_anything_is_stored(service):
    assert service.get_default_rule() == PricingRule()
    assert not service.store_path.exists()


def test_update_default_rule_merges_and_persists(service):
    service.update_default_rule({'primaryStrategy': 'cost_markup', 'markupPercentage': 25})
    service.update_default_rule({'roundingRule': 'up_99'})

    stored = json.loads(service.store_path.read_text(encoding='utf-8'))['default_rule']
    assert stored['primaryStrategy'] == 'cost_markup'
    assert stored['markupPercentage'] == '25'
    assert stored['roundingRule'] == 'up_99'
    assert service.get_default_rule().primary == CostMarkup(25)


def test_invalid_update_leaves_stored_rule_untouched(service):
    service.update_default_rule({'primaryStrategy': 'map'})
    with pytest.raises(ConfigValidationError) as exc:
        service.update_default_rule({'primaryStrategy': 'cost_margin', 'marginPercentage': '100'})
    assert any('Margin percentage' in e for e in exc.value.errors)
    assert service.get_default_rule().primary == Map()


def test_switching_strategy_keeps_stale_value_but_ignores_it(service):
    service.update_default_rule({'primaryStrategy': 'cost_markup', 'markupPercentage': '40'})
    record = service.update_default_rule({'primaryStrategy': 'msrp'})
    assert record['markupPercentage'] == '40'
    assert service.get_default_rule().primary == Msrp()


def test_text_false_does_not_enable_cross_vendor(service):
    record = service.update_default_rule({'primaryStrategy': 'map', 'useCrossVendorFallback': 'false'})
    assert record['useCrossVendorFallback'] is False
    assert service.get_default_rule().use_cross_vendor_fallback is False


def test_reset_default_rule(service):
    service.update_default_rule({'primaryStrategy': 'map', 'useCrossVendorFallback': True})
    service.reset_default_rule()
    assert service.get_default_rule() == PricingRule()


# Validation

def test_validation_requires_owned_parameter():
    result = validate_rule_record({'primaryStrategy': 'msrp_discount'})
    assert not result.valid
    assert 'Discount percentage is required for msrp_discount strategy' in result.errors


def test_validation_warns_about_stale_parameters():
    result = validate_rule_record({'primaryStrategy': 'msrp', 'premiumAmount': '5'})
    assert result.valid
    assert result.warnings == ['Premium amount is ignored by the selected strategies']


def test_validation_of_fallback_parameter():
    result = validate_rule_record({'fallbackStrategy': 'cost_markup'})
    assert 'Fallback markup percentage is required for fallback cost_markup strategy' in result.errors


def test_validation_rejects_unknown_values():
    result = validate_rule_record({'primaryStrategy': 'best', 'roundingRule': 'up_97', 'fallbackStrategy': 'x'})
    assert len(result.errors) == 3


# Configurations

def test_first_configuration_becomes_default(service):
    created = service.create_config(new_config())
    assert created.config_id == 1
    assert created.is_default is True
    assert created.created_at is not None


def test_set_default_keeps_one_default_per_organization(service):
    first = service.create_config(new_config(name='A'))
    second = service.create_config(new_config(name='B'))
    other_org = service.create_config(new_config(organization='globex', name='A'))

    service.set_default(second.config_id)

    defaults = {c.config_id for c in service.list_configs() if c.is_default}
    assert defaults == {second.config_id, other_org.config_id}
    assert service.get_config(first.config_id).is_default is False


def test_create_with_is_default_clears_previous(service):
    service.create_config(new_config(name='A'))
    config = new_config(name='B')
    config.is_default = True
    created = service.create_config(config)
    assert [c.config_id for c in service.list_configs('acme') if c.is_default] == [created.config_id]


def test_create_invalid_configuration(service):
    with pytest.raises(ConfigValidationError) as exc:
        service.create_config(new_config(name='', primaryStrategy='cost_markup'))
    assert 'Name is required' in exc.value.errors
    assert service.list_configs() == []


def test_update_configuration_rule(service):
    created = service.create_config(new_config())
    updated = service.update_config(created.config_id, {
        'name': 'Retail v2',
        'rule': {'primaryStrategy': 'map_premium', 'premiumAmount': '5'},
    })
    assert updated.name == 'Retail v2'
    assert updated.rule['primaryStrategy'] == 'map_premium'
    assert service.get_config(created.config_id).to_pricing_rule().primary.premium_amount == 5


def test_update_and_delete_missing_configuration(service):
    with pytest.raises(ConfigNotFoundError):
        service.update_config(99, {'name': 'x'})
    with pytest.raises(ConfigNotFoundError):
        service.delete_config(99)
    with pytest.raises(ConfigNotFoundError):
        service.set_default(99)


def test_delete_configuration(service):
    created = service.create_config(new_config())
    assert service.delete_config(created.config_id) is True
    assert service.get_config(created.config_id) is None


def test_effective_rule_prefers_active_organization_default(service):
    service.update_default_rule({'primaryStrategy': 'map'})
    created = service.create_config(new_config(primaryStrategy='cost_markup', markupPercentage='30'))

    assert service.effective_rule('acme').primary == CostMarkup(30)
    assert service.effective_rule('globex').primary == Map()
    assert service.effective_rule(None).primary == Map()

    service.update_config(created.config_id, {'is_active': False})
    assert service.effective_rule('acme').primary == Map()
