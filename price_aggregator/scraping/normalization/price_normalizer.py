"""
Price text normalization.

Turns retailer price text such as ``"$1,428.90"``, ``"S$299"`` or
``"SGD 1234.05"`` into a non-negative ``Decimal`` with two fractional
digits. Anything that cannot be read as exactly one amount is a
``ParseError``; there is no default of zero.
"""

from __future__ import annotations

import re
from decimal import Decimal

from price_aggregator.scraping.errors import ParseError

CENTS = Decimal("0.01")

# Longest first so "S$" wins over "$".
CURRENCY_MARKERS: tuple[str, ...] = ("SGD", "USD", "US$", "S$", "$")

STRICT_AMOUNT = re.compile(r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?")
NUMERIC_GROUP = re.compile(r"\d[\d,.]*")
WHITESPACE = re.compile(r"\s+")


class PriceNormalizer:
    """
    Stateless converter between price text and decimal amounts.
    """

    def parse(self, raw: str | None) -> Decimal:
        if raw is None:
            raise ParseError(raw, "no price text")

        text = WHITESPACE.sub(" ", str(raw)).strip()
        if not text:
            raise ParseError(raw, "empty price text")

        stripped = self._strip_currency(text)
        # Unknown prefixes ("RM", "Price:") are left in place; only the
        # numeric groups matter from here on.
        groups = NUMERIC_GROUP.findall(stripped)
        if not groups:
            raise ParseError(raw, "no numeric amount found")
        if len(groups) > 1:
            raise ParseError(raw, f"expected one amount, found {len(groups)}")

        amount = groups[0]
        if self._is_negated(stripped[: stripped.index(amount)]):
            raise ParseError(raw, "negative amount")
        if STRICT_AMOUNT.fullmatch(amount) is None:
            raise ParseError(
                raw,
                "amount must use 3-digit comma groups and at most one decimal point "
                "with 1-2 fractional digits",
            )

        return Decimal(amount.replace(",", "")).quantize(CENTS)

    def format(self, value: Decimal, *, currency_symbol: str = "$") -> str:
        """
        Render an amount the way retailer pages usually do, e.g. ``$1,428.90``.
        """

        return f"{currency_symbol}{value.quantize(CENTS):,.2f}"

    @staticmethod
    def _strip_currency(text: str) -> str:
        result = text
        upper = result.upper()
        for marker in CURRENCY_MARKERS:
            if upper.startswith(marker):
                result = result[len(marker):].strip()
                break
        upper = result.upper()
        for marker in CURRENCY_MARKERS:
            if upper.endswith(marker):
                result = result[: -len(marker)].strip()
                break
        return result

    @staticmethod
    def _is_negated(prefix: str) -> bool:
        """
        True when a minus sign precedes the amount, possibly before a
        currency marker (``-$5``, ``RM -5``, ``Price: $-5``).
        """

        remainder = prefix.rstrip()
        trimmed = True
        while trimmed:
            trimmed = False
            for marker in CURRENCY_MARKERS:
                if remainder.upper().endswith(marker):
                    remainder = remainder[: -len(marker)].rstrip()
                    trimmed = True
                    break
        return remainder.endswith("-")
