"""
Streamlit admin page for the default pricing rule.

Features:
- Edit the default rule, showing only the parameter the chosen strategy uses
- Rounding preview on a sample price
- Test a rule against a price point and sibling vendors
- Vendor field-mapping contracts and their status
"""
import streamlit as st
import pandas as pd
from decimal import Decimal

from retail_pricing.config.settings import get_settings
from retail_pricing.engine import PricePoint, PricingRule, RuleConfigError, resolve_price
from retail_pricing.engine.models import FALLBACK_STRATEGIES, PRIMARY_STRATEGIES
from retail_pricing.engine.rounding import RoundingRule, rounding_examples, rounding_label
from retail_pricing.services.mapping_service import MappingService
from retail_pricing.services.pricing_config_service import (
    ConfigValidationError,
    PricingConfigService,
    validate_rule_record,
)
from retail_pricing.utils.logger import setup_logging


st.set_page_config(page_title="Retail Pricing Admin", layout="wide")


@st.cache_resource
def get_services():
    """Get cached service instances."""
    settings = get_settings()
    setup_logging(settings.log_level)
    return PricingConfigService(settings.pricing_store), MappingService(settings.mappings_store)


config_service, mapping_service = get_services()

PARAMETER_INPUTS = {
    "markupPercentage": "Markup %",
    "marginPercentage": "Target margin %",
    "premiumAmount": "Premium over MAP ($)",
    "discountPercentage": "Discount off MSRP %",
}


def _number(label: str, value, key: str) -> str:
    current = float(value) if value not in (None, "") else 0.0
    return str(st.number_input(label, min_value=0.0, value=current, step=0.5, key=key))


st.title("Retail Pricing Admin")
tab_rule, tab_test, tab_mappings = st.tabs(["Default Pricing Rule", "Test Pricing", "Vendor Mappings"])


# ============================================================================
# TAB 1: DEFAULT RULE
# ============================================================================
with tab_rule:
    record = config_service.get_default_rule_record()
    col1, col2 = st.columns([1.4, 1], gap="large")

    with col1:
        strategies = list(PRIMARY_STRATEGIES)
        primary = st.selectbox(
            "Primary strategy", strategies,
            index=strategies.index(record["primaryStrategy"]) if record["primaryStrategy"] in strategies else 0,
        )
        updates = {"primaryStrategy": primary}

        param_key = PRIMARY_STRATEGIES[primary][1]
        if param_key:
            updates[param_key] = _number(PARAMETER_INPUTS[param_key], record.get(param_key), param_key)

        fallbacks = ["none"] + list(FALLBACK_STRATEGIES)
        fallback = st.selectbox(
            "Fallback strategy", fallbacks,
            index=fallbacks.index(record["fallbackStrategy"]) if record["fallbackStrategy"] in fallbacks else 0,
        )
        updates["fallbackStrategy"] = fallback
        if fallback != "none" and FALLBACK_STRATEGIES[fallback][1]:
            updates["fallbackMarkupPercentage"] = _number(
                "Fallback markup / margin %", record.get("fallbackMarkupPercentage"), "fallbackMarkupPercentage"
            )

        rules = [r.value for r in RoundingRule]
        updates["roundingRule"] = st.selectbox(
            "Rounding rule", rules,
            index=rules.index(record["roundingRule"]),
            format_func=lambda v: rounding_label(RoundingRule(v)),
        )
        updates["useCrossVendorFallback"] = st.checkbox(
            "Use highest MAP/MSRP from other vendors when the selected vendor has none",
            value=bool(record["useCrossVendorFallback"]),
        )

        validation = validate_rule_record({**record, **updates})
        for warning in validation.warnings:
            st.caption(f"⚠️ {warning}")

        save_col, reset_col = st.columns(2)
        if save_col.button("Save rule", type="primary", use_container_width=True):
            try:
                config_service.update_default_rule(updates)
                st.success("Default pricing rule saved")
            except ConfigValidationError as e:
                for error in e.errors:
                    st.error(error)
        if reset_col.button("Reset to defaults", use_container_width=True):
            config_service.reset_default_rule()
            st.rerun()

    with col2:
        st.subheader("Rounding preview")
        sample = st.number_input("Sample price", min_value=0.01, value=24.67, step=1.0)
        examples = rounding_examples(Decimal(str(sample)))
        st.dataframe(
            pd.DataFrame(
                [{"Rule": rounding_label(RoundingRule(k)), "Result": f"${v}"} for k, v in examples.items()]
            ),
            hide_index=True,
            use_container_width=True,
        )


# ============================================================================
# TAB 2: TEST PRICING
# ============================================================================
with tab_test:
    st.caption("Prices one product with the saved default rule.")
    st.markdown("**Selected vendor**")
    c1, c2, c3, c4 = st.columns(4)
    vendor = c1.text_input("Vendor", value="Vendor A")
    cost = c2.text_input("Cost", value="10.00")
    map_price = c3.text_input("MAP", value="")
    msrp = c4.text_input("MSRP", value="")

    st.markdown("**Other vendors carrying the product**")
    others_df = st.data_editor(
        pd.DataFrame([{"vendor": "Vendor B", "cost": None, "map": None, "msrp": None}]),
        num_rows="dynamic",
        use_container_width=True,
    )

    if st.button("Resolve price", type="primary"):
        try:
            rule = config_service.get_default_rule()
            selected = PricePoint.from_values(vendor, cost, map_price, msrp)
            others = [
                PricePoint.from_values(
                    row["vendor"],
                    None if pd.isna(row["cost"]) else row["cost"],
                    None if pd.isna(row["map"]) else row["map"],
                    None if pd.isna(row["msrp"]) else row["msrp"],
                )
                for _, row in others_df.iterrows() if str(row["vendor"]).strip()
            ]
        except (RuleConfigError, ValueError) as e:
            st.error(f"Invalid input: {e}")
        else:
            resolution = resolve_price(rule, selected, others)
            if resolution.ok:
                st.metric("Retail price", f"${resolution.price:.2f}", help=resolution.strategy_used)
            else:
                st.error(str(resolution.error))
            with st.expander("🔍 Resolution Details", expanded=not resolution.ok):
                st.code(resolution.get_trace_text())


# ============================================================================
# TAB 3: VENDOR MAPPINGS
# ============================================================================
with tab_mappings:
    mappings = mapping_service.list_mappings()
    if not mappings:
        st.info("No vendor field mappings yet. Create them through the API.")
    for mapping in mappings:
        with st.container(border=True):
            st.markdown(f"**{mapping.vendor_source}** ({mapping.mapping_name}) · `{mapping.status.value}`")
            st.caption(", ".join(f"{f} ← {c}" for f, c in list(mapping.column_mappings.items())[:4]))
            if mapping.status.value == "draft" and st.button("Approve", key=f"approve-{mapping.mapping_id}"):
                mapping_service.approve(mapping.mapping_id, "streamlit-admin")
                st.rerun()
