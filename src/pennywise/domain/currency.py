from dataclasses import dataclass

PRIMARY_CURRENCY = "GBP"
SECONDARY_CURRENCY = "AED"

# 1 AED = 0.21 GBP. Fixed so historical reports stay reproducible.
AED_TO_GBP_RATE = 0.21


@dataclass(frozen=True)
class CurrencyNormalizer:
    rate: float = AED_TO_GBP_RATE

    def to_primary(self, amount_secondary: float) -> float:
        return amount_secondary * self.rate

    def to_secondary(self, amount_primary: float) -> float:
        return amount_primary / self.rate

    def rate_for(self, currency: str) -> float:
        """Multiplier that converts an amount in `currency` into GBP."""
        return self.rate if currency.upper() == SECONDARY_CURRENCY else 1.0
