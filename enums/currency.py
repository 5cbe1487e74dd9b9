from enum import Enum


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    JPY = "JPY"

    @property
    def minor_unit_factor(self) -> int:
        """Multiplier from major to minor units (JPY has no minor unit)."""
        if self == Currency.JPY:
            return 1
        return 100

    def get_symbol(self) -> str:
        return {
            Currency.USD: "$",
            Currency.EUR: "€",
            Currency.GBP: "£",
            Currency.CAD: "CA$",
            Currency.AUD: "A$",
            Currency.JPY: "¥",
        }[self]
