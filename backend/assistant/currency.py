from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional


class UnsupportedCurrencyError(ValueError):
    pass


class RateSource(ABC):
    """Exchange rates expressed as units of currency per 1 USD."""

    @abstractmethod
    def units_per_usd(self, currency: str) -> float:
        ...


class FixedRateSource(RateSource):
    def __init__(self, rates: Mapping[str, float]):
        self._rates = {k.lower(): float(v) for k, v in rates.items()}
        self._rates["usd"] = 1.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FixedRateSource":
        return cls(
            {
                "vnd": config.get("USD_VND_RATE", 25000),
                "eur": config.get("USD_EUR_RATE", 0.92),
            }
        )

    def units_per_usd(self, currency: str) -> float:
        try:
            return self._rates[currency.lower()]
        except KeyError:
            raise UnsupportedCurrencyError(f"No exchange rate for {currency!r}") from None


def to_usd(amount: float, currency: Optional[str], rates: RateSource) -> float:
    """Convert amount to USD; a missing currency is taken as USD already."""
    if not currency or currency.lower() == "usd":
        return round(float(amount), 2)
    return round(float(amount) / rates.units_per_usd(currency), 2)
