"""
City and region resolution for Iraqi addresses.
"""

from .address_parser import CITY_VARIANTS, AddressParser, ParsedAddress, address_parser
from .alias_resolver import CityAliasResolver, CityMatch, city_alias_resolver, normalize_arabic_text
from .aliases import IRAQ_CITIES, REGION_PATTERNS

__all__ = [
    "CITY_VARIANTS",
    "IRAQ_CITIES",
    "REGION_PATTERNS",
    "AddressParser",
    "CityAliasResolver",
    "CityMatch",
    "ParsedAddress",
    "address_parser",
    "city_alias_resolver",
    "normalize_arabic_text",
]
