"""Tenant pricing configuration.

Pricing inputs that used to be read ad hoc from a settings table are carried
in one explicit value, ``TenantPricingConfig``, and passed into the pricing
engine. ``load_pricing_config`` builds it from the ``[custom.pricing]`` table
of the Ordering domain's ``domain.toml``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from ordering.pricing.money import parse_rate, to_money

logger = structlog.get_logger(__name__)

DEFAULT_TAX_RATE = Decimal("0.08")
DEFAULT_SHIPPING_FEE = Decimal("5.99")
FREE_SHIPPING_THRESHOLD = Decimal("50.00")


@dataclass(frozen=True)
class TenantPricingConfig:
    """Tax rate, shipping fees and free-shipping threshold for one tenant."""

    tenant_id: str = "default"
    tax_rate: Decimal = DEFAULT_TAX_RATE
    default_shipping_fee: Decimal = DEFAULT_SHIPPING_FEE
    region_fees: Mapping[str, Decimal] = field(default_factory=dict)
    free_shipping_threshold: Decimal = FREE_SHIPPING_THRESHOLD
    currency: str = "USD"

    def shipping_fee_for(self, region: str | None) -> Decimal:
        """Return the shipping fee for a region, falling back to the tenant default."""
        if region:
            fee = self.region_fees.get(region.strip().upper())
            if fee is not None:
                return fee
        return self.default_shipping_fee

    @classmethod
    def from_mapping(cls, data: Mapping) -> "TenantPricingConfig":
        """Build a config from a plain mapping (e.g. a TOML table).

        A tax rate that is not a finite number is kept as zero so pricing
        stays fail-safe rather than fail-closed.
        """
        tax_rate = parse_rate(data.get("tax_rate", DEFAULT_TAX_RATE))
        if tax_rate is None:
            logger.warning("Invalid tax rate in pricing config, using zero", tax_rate=data.get("tax_rate"))
            tax_rate = Decimal("0")

        region_fees = {
            str(region).strip().upper(): to_money(fee) for region, fee in (data.get("region_fees") or {}).items()
        }

        return cls(
            tenant_id=str(data.get("tenant_id", "default")),
            tax_rate=tax_rate,
            default_shipping_fee=to_money(data.get("default_shipping_fee", DEFAULT_SHIPPING_FEE)),
            region_fees=region_fees,
            free_shipping_threshold=to_money(data.get("free_shipping_threshold", FREE_SHIPPING_THRESHOLD)),
            currency=str(data.get("currency", "USD")),
        )


def load_pricing_config(domain=None) -> TenantPricingConfig:
    """Read ``[custom.pricing]`` from the domain configuration."""
    if domain is None:
        from protean.utils.globals import current_domain

        domain = current_domain

    custom = domain.config.get("custom") or {}
    return TenantPricingConfig.from_mapping(custom.get("pricing") or {})
