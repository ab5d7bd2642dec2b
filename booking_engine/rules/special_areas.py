"""
Special area registry: keyword-matched zones with per-channel price overrides.

A booking address is matched case-insensitively against each active area's
search keywords; the first active area (ordered by name) wins. Keywords
shared between active areas make matching ambiguous and are reported as an
integrity issue rather than resolved at booking time.
"""

import logging
from typing import Iterable, Optional

from booking_engine.schemas.config_schema import SpecialArea, SpecialAreaPricing

logger = logging.getLogger(__name__)


class SpecialAreaRegistry:
    """Lookup over special areas and their pricing overrides."""

    def __init__(
        self,
        areas: Iterable[SpecialArea] = (),
        area_pricing: Iterable[SpecialAreaPricing] = (),
    ) -> None:
        self._areas: tuple[SpecialArea, ...] = tuple(sorted(areas, key=lambda a: (a.name, a.code)))
        self._pricing: tuple[SpecialAreaPricing, ...] = tuple(area_pricing)

    @property
    def areas(self) -> tuple[SpecialArea, ...]:
        return self._areas

    def get(self, code: str) -> Optional[SpecialArea]:
        for area in self._areas:
            if area.code == code:
                return area
        return None

    def match(self, address: Optional[str]) -> Optional[SpecialArea]:
        """Return the first active area whose keywords appear in ``address``."""
        if not address or not address.strip():
            return None
        for area in self._areas:
            if area.is_active and area.matches(address):
                logger.debug("Address matched special area %s", area.code)
                return area
        return None

    def pricing_for(self, channel_id: str, area_code: str) -> Optional[SpecialAreaPricing]:
        """Active override for the channel in an active area, if any."""
        area = self.get(area_code)
        if area is None or not area.is_active:
            return None
        for pricing in self._pricing:
            if pricing.is_active and pricing.channel_id == channel_id and pricing.area_code == area_code:
                return pricing
        return None

    def integrity_issues(self) -> list[str]:
        issues: list[str] = []

        codes: set[str] = set()
        for area in self._areas:
            if area.code in codes:
                issues.append(f"Duplicate special area code '{area.code}'")
            codes.add(area.code)

        owners: dict[str, str] = {}
        for area in self._areas:
            if not area.is_active:
                continue
            for keyword in sorted(area.search_keywords):
                owner = owners.get(keyword)
                if owner is not None and owner != area.code:
                    issues.append(
                        f"Keyword '{keyword}' matches both special areas '{owner}' and '{area.code}'"
                    )
                else:
                    owners[keyword] = area.code

        pairs: set[tuple[str, str]] = set()
        for pricing in self._pricing:
            if pricing.area_code not in codes:
                issues.append(
                    f"Area pricing '{pricing.id}' references unknown area '{pricing.area_code}'"
                )
            if not pricing.is_active:
                continue
            key = (pricing.channel_id, pricing.area_code)
            if key in pairs:
                issues.append(
                    f"More than one active price override for area '{pricing.area_code}' "
                    f"on channel '{pricing.channel_id}'"
                )
            pairs.add(key)
        return issues
