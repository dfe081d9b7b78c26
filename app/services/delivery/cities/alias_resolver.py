"""
City alias resolution.

Free text typed by customers ("بصره", "Basra", "الناصرية") is resolved to
one of the 18 governorates. Matching runs on normalized text: lowercase,
unified hamza forms, taa marbuta as haa, alif maqsura as yaa.
"""

import logging
import re
from dataclasses import dataclass

from .aliases import IRAQ_CITIES

logger = logging.getLogger(__name__)

_ALEF_FORMS = re.compile("[أإآ]")
_SPACES = re.compile(r"\s+")


def normalize_arabic_text(text: str | None) -> str:
    """
    Normaliza texto árabe para comparaciones.

    Ejemplos:
        "البصرة" -> "البصره"
        "ديالى"  -> "ديالي"
        "  Basra " -> "basra"
    """
    if not text:
        return ""
    normalized = text.strip().lower()
    normalized = _ALEF_FORMS.sub("ا", normalized)
    normalized = normalized.replace("ة", "ه").replace("ى", "ي")
    normalized = normalized.replace("ؤ", "و").replace("ئ", "ي")
    return _SPACES.sub(" ", normalized)


def _strip_article(text: str) -> str:
    return text[2:] if text.startswith("ال") and len(text) > 3 else text


@dataclass(frozen=True)
class CityMatch:
    city_id: int
    city_name: str
    confidence: float
    matched_text: str


class CityAliasResolver:
    """
    Resolve free text into a governorate.

    Extra aliases (for example rows of the ``city_aliases`` table) can be
    registered with ``add_alias``.
    """

    def __init__(self, cities: dict[int, dict] | None = None):
        self._cities = cities or IRAQ_CITIES
        self._index: dict[str, tuple[int, float]] = {}
        for city_id, city in self._cities.items():
            self._register(city["name"], city_id, 1.0)
            for alias in city["aliases"]:
                self._register(alias.text, city_id, alias.confidence)

    def _register(self, text: str, city_id: int, confidence: float) -> None:
        key = normalize_arabic_text(text)
        current = self._index.get(key)
        if current is None or confidence > current[1]:
            self._index[key] = (city_id, confidence)

    def add_alias(self, city_id: int, alias: str, confidence: float = 0.9) -> None:
        if city_id not in self._cities:
            raise ValueError(f"Unknown city id: {city_id}")
        self._register(alias, city_id, confidence)

    def city_name(self, city_id: int) -> str | None:
        city = self._cities.get(city_id)
        return city["name"] if city else None

    def resolve(self, text: str | None) -> CityMatch | None:
        """
        Resolve a city name or alias.

        Exact normalized match first, then the same text without the
        leading article, then a prefix match (confidence 0.7).
        """
        normalized = normalize_arabic_text(text)
        if not normalized:
            return None

        hit = self._index.get(normalized)
        if hit is None:
            bare = _strip_article(normalized)
            hit = next(
                (value for key, value in self._index.items() if _strip_article(key) == bare),
                None,
            )
        if hit is not None:
            city_id, confidence = hit
            return CityMatch(city_id, self._cities[city_id]["name"], confidence, text.strip())

        if len(normalized) >= 3:
            for key, (city_id, confidence) in self._index.items():
                if len(key) >= 3 and (key.startswith(normalized) or normalized.startswith(key)):
                    return CityMatch(city_id, self._cities[city_id]["name"], min(confidence, 0.7), text.strip())

        logger.debug(f"City not resolved: {text!r}")
        return None

    def find_in_text(self, text: str | None) -> CityMatch | None:
        """
        Find the first city mentioned in a free-text line.

        Two-word aliases ("ذي قار", "صلاح الدين") are tried before single words.
        """
        if not text:
            return None
        words = text.split()
        for size in (2, 1):
            for start in range(len(words) - size + 1):
                candidate = " ".join(words[start : start + size])
                hit = self._index.get(normalize_arabic_text(candidate))
                if hit is not None:
                    city_id, confidence = hit
                    return CityMatch(city_id, self._cities[city_id]["name"], confidence, candidate)
        return None

    @staticmethod
    def search_regions(text: str, regions: list[dict]) -> list[dict]:
        """
        Rank cached regions of a city against free text.

        Args:
            text: Region typed by the customer
            regions: Rows with at least ``id`` and ``name``

        Returns:
            list: Matches ``{"region_id", "region_name", "confidence"}`` best first
        """
        normalized = _strip_article(normalize_arabic_text(text))
        if not normalized:
            return []

        matches = []
        for region in regions:
            name = _strip_article(normalize_arabic_text(region["name"]))
            if name == normalized:
                confidence = 1.0
            elif name.startswith(normalized) or normalized.startswith(name):
                confidence = 0.9
            elif normalized in name or name in normalized:
                confidence = 0.7
            else:
                continue
            matches.append({"region_id": region["id"], "region_name": region["name"], "confidence": confidence})

        matches.sort(key=lambda match: match["confidence"], reverse=True)
        return matches


city_alias_resolver = CityAliasResolver()
