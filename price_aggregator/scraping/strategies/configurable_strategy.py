"""
Config-driven extraction strategy.
"""

from __future__ import annotations

from collections.abc import Sequence

from price_aggregator.scraping.base import ExtractionStrategy


class ConfigurableExtractionStrategy(ExtractionStrategy):
    """
    Strategy that relies on selectors from platform config, falling back to
    the class defaults when the config lists none.
    """

    def selectors(self) -> Sequence[str]:
        return self.config.selectors or self.DEFAULT_SELECTORS
