"""
Common aliases of the 18 Iraqi governorates.

Keys are the Al-Waseet city ids. Each alias carries a confidence score: 1.0
for English names and accepted alternative names, lower for misspellings and
abbreviations.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CityAlias:
    text: str
    confidence: float
    alias_type: str


def _aliases(*rows: tuple[str, float, str]) -> tuple[CityAlias, ...]:
    return tuple(CityAlias(text, confidence, alias_type) for text, confidence, alias_type in rows)


IRAQ_CITIES: dict[int, dict] = {
    1: {
        "name": "بغداد",
        "aliases": _aliases(
            ("baghdad", 1.0, "english"),
            ("بقداد", 0.9, "misspelling"),
            ("بغدد", 0.9, "misspelling"),
            ("بغدا", 0.9, "misspelling"),
            ("بقدد", 0.8, "misspelling"),
            ("بكداد", 0.8, "misspelling"),
            ("العاصمة", 1.0, "alternative"),
            ("عاصمة", 0.9, "alternative"),
            ("bgd", 0.7, "abbreviation"),
        ),
    },
    2: {
        "name": "البصرة",
        "aliases": _aliases(
            ("basra", 1.0, "english"),
            ("basrah", 1.0, "english"),
            ("البصره", 0.9, "misspelling"),
            ("بصرة", 1.0, "alternative"),
            ("بصره", 0.9, "misspelling"),
            ("الفيحاء", 1.0, "alternative"),
            ("فيحاء", 0.9, "alternative"),
        ),
    },
    3: {
        "name": "نينوى",
        "aliases": _aliases(
            ("nineveh", 1.0, "english"),
            ("ninawa", 1.0, "english"),
            ("mosul", 1.0, "english"),
            ("نينوا", 0.9, "misspelling"),
            ("نينوئ", 0.8, "misspelling"),
            ("الموصل", 1.0, "alternative"),
            ("موصل", 1.0, "alternative"),
            ("الحدباء", 0.9, "alternative"),
        ),
    },
    4: {
        "name": "أربيل",
        "aliases": _aliases(
            ("erbil", 1.0, "english"),
            ("arbil", 1.0, "english"),
            ("hawler", 0.9, "english"),
            ("اربيل", 1.0, "alternative"),
            ("اربل", 0.9, "misspelling"),
            ("أربل", 0.9, "misspelling"),
            ("هولير", 0.9, "kurdish"),
            ("هەولێر", 0.9, "kurdish"),
        ),
    },
    5: {
        "name": "السليمانية",
        "aliases": _aliases(
            ("sulaymaniyah", 1.0, "english"),
            ("sulaimaniya", 1.0, "english"),
            ("سليمانيه", 0.9, "misspelling"),
            ("سليمانية", 1.0, "alternative"),
            ("سليماني", 0.8, "misspelling"),
            ("سلێمانی", 0.9, "kurdish"),
        ),
    },
    6: {
        "name": "دهوك",
        "aliases": _aliases(
            ("duhok", 1.0, "english"),
            ("dahuk", 1.0, "english"),
            ("دهوق", 0.9, "misspelling"),
            ("دهوگ", 0.8, "misspelling"),
            ("دهۆك", 0.9, "kurdish"),
        ),
    },
    7: {
        "name": "كركوك",
        "aliases": _aliases(
            ("kirkuk", 1.0, "english"),
            ("karkuk", 0.9, "english"),
            ("كرکوک", 0.9, "misspelling"),
            ("كركوگ", 0.8, "misspelling"),
            ("کرکوک", 0.9, "kurdish"),
        ),
    },
    8: {
        "name": "الأنبار",
        "aliases": _aliases(
            ("anbar", 1.0, "english"),
            ("al-anbar", 1.0, "english"),
            ("الانبار", 1.0, "alternative"),
            ("انبار", 1.0, "alternative"),
            ("الرمادي", 0.9, "alternative"),
            ("رمادي", 0.9, "alternative"),
        ),
    },
    9: {
        "name": "صلاح الدين",
        "aliases": _aliases(
            ("salahuddin", 1.0, "english"),
            ("salah al-din", 1.0, "english"),
            ("صلاح", 0.8, "abbreviation"),
            ("صلاحدين", 0.9, "misspelling"),
            ("تكريت", 0.9, "alternative"),
            ("tikrit", 0.9, "english"),
        ),
    },
    10: {
        "name": "ديالى",
        "aliases": _aliases(
            ("diyala", 1.0, "english"),
            ("diyali", 0.9, "english"),
            ("ديالا", 0.9, "misspelling"),
            ("ديالي", 0.9, "misspelling"),
            ("بعقوبة", 0.9, "alternative"),
            ("بعقوبه", 0.8, "misspelling"),
        ),
    },
    11: {
        "name": "واسط",
        "aliases": _aliases(
            ("wasit", 1.0, "english"),
            ("waset", 0.9, "english"),
            ("واسيط", 0.8, "misspelling"),
            ("الكوت", 1.0, "alternative"),
            ("كوت", 1.0, "alternative"),
            ("الكوط", 0.8, "misspelling"),
        ),
    },
    12: {
        "name": "بابل",
        "aliases": _aliases(
            ("babylon", 1.0, "english"),
            ("babil", 1.0, "english"),
            ("hilla", 0.9, "english"),
            ("بابيل", 0.9, "misspelling"),
            ("الحلة", 1.0, "alternative"),
            ("حلة", 1.0, "alternative"),
            ("الحله", 0.9, "misspelling"),
        ),
    },
    13: {
        "name": "كربلاء",
        "aliases": _aliases(
            ("karbala", 1.0, "english"),
            ("kerbala", 0.9, "english"),
            ("كربلا", 0.9, "misspelling"),
            ("كربلائ", 0.9, "misspelling"),
            ("کربلاء", 0.9, "misspelling"),
            ("كربله", 0.8, "misspelling"),
            ("كربل", 0.7, "abbreviation"),
        ),
    },
    14: {
        "name": "النجف",
        "aliases": _aliases(
            ("najaf", 1.0, "english"),
            ("an-najaf", 1.0, "english"),
            ("النجاف", 0.9, "misspelling"),
            ("نجف", 1.0, "alternative"),
            ("نجاف", 0.8, "misspelling"),
            ("النجف الاشرف", 1.0, "alternative"),
        ),
    },
    15: {
        "name": "القادسية",
        "aliases": _aliases(
            ("qadisiyyah", 1.0, "english"),
            ("al-qadisiyyah", 1.0, "english"),
            ("diwaniyah", 0.9, "english"),
            ("القادسيه", 0.9, "misspelling"),
            ("قادسية", 1.0, "alternative"),
            ("الديوانية", 1.0, "alternative"),
            ("ديوانية", 1.0, "alternative"),
            ("الديوانيه", 0.9, "misspelling"),
        ),
    },
    16: {
        "name": "المثنى",
        "aliases": _aliases(
            ("muthanna", 1.0, "english"),
            ("al-muthanna", 1.0, "english"),
            ("samawah", 0.9, "english"),
            ("المثنا", 0.9, "misspelling"),
            ("مثنى", 1.0, "alternative"),
            ("السماوة", 1.0, "alternative"),
            ("سماوة", 1.0, "alternative"),
            ("السماوه", 0.9, "misspelling"),
        ),
    },
    17: {
        "name": "ذي قار",
        "aliases": _aliases(
            ("dhi qar", 1.0, "english"),
            ("thi-qar", 0.9, "english"),
            ("nasiriyah", 0.9, "english"),
            ("ذيقار", 1.0, "alternative"),
            ("ذي قر", 0.9, "misspelling"),
            ("الناصرية", 1.0, "alternative"),
            ("ناصرية", 1.0, "alternative"),
            ("الناصريه", 0.9, "misspelling"),
        ),
    },
    18: {
        "name": "ميسان",
        "aliases": _aliases(
            ("maysan", 1.0, "english"),
            ("misan", 0.9, "english"),
            ("ميسن", 0.9, "misspelling"),
            ("العمارة", 1.0, "alternative"),
            ("عمارة", 1.0, "alternative"),
            ("العماره", 0.9, "misspelling"),
            ("عماره", 0.8, "misspelling"),
        ),
    },
}

# Common districts per city, longest compound names first
REGION_PATTERNS: dict[str, tuple[str, ...]] = {
    "بغداد": (
        "دورة حي الصحة",
        "دورة صحة",
        "كرادة داخل",
        "كرادة خارج",
        "مدينة الصدر",
        "حي الصدر",
        "مدينة العمال",
        "شارع فلسطين",
        "حي العدل",
        "حي الجامعة",
        "حي البياع",
        "حي الغدير",
        "حي الأطباء",
        "حي الصالحية",
        "حي الكريمات",
        "حي الجزائر",
        "الدورة اسكان",
        "الدورة الصحة",
        "كفتئات الصحة",
        "الدورة",
        "الكرادة",
        "الكاظمية",
        "الأعظمية",
        "المنصور",
        "الرصافة",
        "الكرخ",
        "الشعلة",
        "البياع",
        "الغدير",
        "الصدر",
        "العدل",
        "الجامعة",
        "الصالحية",
        "الكريمات",
    ),
    "البصرة": (
        "الجمهورية",
        "الأسماك",
        "العشار",
        "المعقل",
        "الفيحاء",
        "كرمة علي",
        "حي الحسين",
        "حي الجزائر",
    ),
    "أربيل": ("عنكاوا", "شورش", "باختياري", "قلاوري"),
}
