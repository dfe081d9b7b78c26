"""
Address line parser.

Splits a free-text address such as ``"بغداد دورة حي الصحة قرب جامع الرحمن"``
into city, region and the remaining landmark text.
"""

import logging
import math
import re
from dataclasses import dataclass

from .aliases import REGION_PATTERNS

logger = logging.getLogger(__name__)

# Spellings accepted for each city inside an address line
CITY_VARIANTS: dict[str, tuple[str, ...]] = {
    "بغداد": ("بغداد", "baghdad", "بكداد"),
    "البصرة": ("بصرة", "بصره", "البصرة", "البصره", "basra", "basrah"),
    "أربيل": ("أربيل", "اربيل", "erbil", "hawler"),
    "الموصل": ("موصل", "الموصل", "mosul"),
    "كربلاء": ("كربلاء", "كربلا", "karbala"),
    "النجف": ("نجف", "النجف", "najaf"),
    "بابل": ("بابل", "الحلة", "babel", "hilla"),
    "ذي قار": ("ذي قار", "ذيقار", "الناصرية", "nasiriyah"),
    "ديالى": ("ديالى", "ديالا", "بعقوبة", "diyala"),
    "الأنبار": ("انبار", "الانبار", "الأنبار", "الرمادي", "anbar"),
    "صلاح الدين": ("صلاح الدين", "تكريت", "tikrit"),
    "واسط": ("واسط", "الكوت", "wasit"),
    "المثنى": ("مثنى", "المثنى", "السماوة", "samawah"),
    "القادسية": ("قادسية", "القادسية", "الديوانية", "diwaniyah"),
    "كركوك": ("كركوك", "kirkuk"),
    "دهوك": ("دهوك", "duhok"),
    "السليمانية": ("سليمانية", "السليمانية", "sulaymaniyah"),
    "ميسان": ("ميسان", "العمارة", "maysan"),
}

# Words that never describe a landmark
FILLER_WORDS = ("استلام", "محلي", "توصيل", "طلب", "زبون", "من", "في", "على", "عند", "قرب", "مقابل")

PARTIAL_MATCH_RATIO = 0.7
PARTIAL_MATCH_WEIGHT = 0.5

_PHONE = re.compile(r"(?<!\d)07[5789]\d{8}(?!\d)")
_TRAILING = re.compile(r"[,،\-\s]+$")
_SPACES = re.compile(r"\s+")


def _word_pattern(phrase: str) -> re.Pattern:
    body = r"\s+".join(re.escape(part) for part in phrase.split())
    return re.compile(rf"(?<!\w){body}(?!\w)", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedAddress:
    city: str | None
    region: str | None
    remaining_text: str

    def to_dict(self) -> dict:
        return {"city": self.city, "region": self.region, "remaining_text": self.remaining_text}


class AddressParser:
    """Parse address lines with the city variants and region patterns."""

    def __init__(
        self,
        city_variants: dict[str, tuple[str, ...]] | None = None,
        region_patterns: dict[str, tuple[str, ...]] | None = None,
    ):
        self.city_variants = city_variants or CITY_VARIANTS
        self.region_patterns = region_patterns or REGION_PATTERNS

    def detect_city(self, text: str) -> str | None:
        for city, variants in self.city_variants.items():
            if any(_word_pattern(variant).search(text) for variant in variants):
                return city
        return None

    def detect_region(self, city: str | None, text: str) -> str | None:
        """
        Best region of ``city`` found in ``text``.

        An exact substring scores its length, so the longest one wins. A
        compound region with at least 70% of its words present scores
        ``hits * length * 0.5``.
        """
        patterns = self.region_patterns.get(city or "")
        if not patterns:
            return None

        full_text = text.lower()
        best_match = None
        best_score = 0.0

        for region in patterns:
            region_lower = region.lower()
            region_words = region_lower.split()

            if region_lower in full_text:
                score = float(len(region_lower))
            elif len(region_words) > 1:
                hits = sum(1 for word in region_words if word in full_text)
                if hits < math.ceil(len(region_words) * PARTIAL_MATCH_RATIO):
                    continue
                score = hits * len(region_lower) * PARTIAL_MATCH_WEIGHT
            else:
                continue

            if score > best_score:
                best_match = region
                best_score = score

        return best_match

    def parse(self, address_text: str | None) -> ParsedAddress:
        if not address_text or not address_text.strip():
            return ParsedAddress(city=None, region=None, remaining_text="")

        text = address_text.strip()
        city = self.detect_city(text)
        region = self.detect_region(city, text)

        remaining = text
        if city:
            for variant in self.city_variants.get(city, (city,)):
                remaining = _word_pattern(variant).sub("", remaining)
        if region:
            remaining = _word_pattern(region).sub("", remaining)

        remaining = _PHONE.sub("", remaining)
        for word in FILLER_WORDS:
            remaining = _word_pattern(word).sub("", remaining)

        remaining = _TRAILING.sub("", _SPACES.sub(" ", remaining)).strip()

        logger.debug(f"Address parsed: city={city} region={region} rest={remaining!r}")
        return ParsedAddress(city=city, region=region, remaining_text=remaining)


address_parser = AddressParser()
