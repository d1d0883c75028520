"""
URL resolver interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class UrlResolver(ABC):
    """
    Maps a product identity to competitor product page URLs.
    """

    @abstractmethod
    def resolve(self, product_id: str, brand: str, model: str) -> dict[str, str]:
        """
        Return ``{competitor name: url}``; an empty mapping is valid.

        Raises ResolverError when the underlying lookup is unavailable.
        """
