"""City tier and demographic lookup for free-text Indian locations."""
import re
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from feasibility.models.profiles import LocationProfile
from feasibility.models.request import NOT_SPECIFIED

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"[\s\-_/|.]+")


def normalize_location(text: str) -> str:
    """Lower-case, trim and collapse separators (commas are kept as segment breaks)."""
    parts = [_SEPARATOR_RE.sub(" ", p).strip() for p in text.lower().split(",")]
    return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class CityRecord:
    name: str
    state: str
    tier: int
    population: int | None = None
    literacy_rate: float | None = None
    average_monthly_income: int | None = None
    growth_rate: float | None = None


class Gazetteer:
    """Immutable lookup table of cities, aliases and neighborhoods.

    Keys are normalized names. Aliases and neighborhoods point at a canonical
    city key. Replace the whole table to update it.
    """

    def __init__(
        self,
        version: str,
        cities: Mapping[str, CityRecord],
        aliases: Mapping[str, str] | None = None,
        neighborhoods: Mapping[str, str] | None = None,
    ):
        self.version = version
        self._cities = MappingProxyType(dict(cities))
        self._aliases = MappingProxyType(dict(aliases or {}))
        self._neighborhoods = MappingProxyType(dict(neighborhoods or {}))
        for key, target in list(self._aliases.items()) + list(self._neighborhoods.items()):
            if target not in self._cities:
                raise ValueError(f"Gazetteer entry '{key}' points at unknown city '{target}'")

    def lookup(self, key: str) -> tuple[CityRecord, str] | None:
        """Return (city, kind) where kind is 'city', 'alias' or 'neighborhood'."""
        if key in self._cities:
            return self._cities[key], "city"
        if key in self._aliases:
            return self._cities[self._aliases[key]], "alias"
        if key in self._neighborhoods:
            return self._cities[self._neighborhoods[key]], "neighborhood"
        return None

    def __len__(self) -> int:
        return len(self._cities)


class LocationClassifier:
    def __init__(self, gazetteer: Gazetteer | None = None):
        self.gazetteer = gazetteer or DEFAULT_GAZETTEER

    def classify(self, location: str | None) -> LocationProfile:
        query = (location or "").strip()
        if not query or query == NOT_SPECIFIED:
            return LocationProfile(query=query or NOT_SPECIFIED)

        for key in _candidate_keys(normalize_location(query)):
            hit = self.gazetteer.lookup(key)
            if hit:
                city, kind = hit
                logger.info(f"Location '{query}' resolved to {city.name} (tier {city.tier}) via {kind} '{key}'")
                return LocationProfile(
                    query=query,
                    city=city.name,
                    state=city.state,
                    tier=city.tier,
                    population=city.population,
                    literacy_rate=city.literacy_rate,
                    average_monthly_income=city.average_monthly_income,
                    growth_rate=city.growth_rate,
                    matched_on=key,
                )

        logger.info(f"Location '{query}' not in gazetteer {self.gazetteer.version}, defaulting to tier 3")
        return LocationProfile(query=query)


def _candidate_keys(normalized: str) -> list[str]:
    """Full string, then comma segments, then adjacent word pairs, then single words."""
    keys: list[str] = []
    flat = normalized.replace(",", " ")
    flat = " ".join(flat.split())
    segments = [s.strip() for s in normalized.split(",") if s.strip()]
    tokens = flat.split()

    keys.append(flat)
    keys.extend(segments)
    keys.extend(f"{a} {b}" for a, b in zip(tokens, tokens[1:]))
    keys.extend(tokens)

    seen: set[str] = set()
    ordered = []
    for k in keys:
        if k and k not in seen:
            seen.add(k)
            ordered.append(k)
    return ordered


# Census-2011 city populations; income is an approximate household figure in INR/month.
_CITIES = {
    # Tier 1
    "mumbai": CityRecord("Mumbai", "Maharashtra", 1, 12_442_373, 0.90, 52_000, 0.8),
    "delhi": CityRecord("Delhi", "Delhi", 1, 11_034_555, 0.86, 48_000, 1.9),
    "bangalore": CityRecord("Bangalore", "Karnataka", 1, 8_443_675, 0.89, 50_000, 3.5),
    "hyderabad": CityRecord("Hyderabad", "Telangana", 1, 6_993_262, 0.83, 42_000, 2.4),
    "chennai": CityRecord("Chennai", "Tamil Nadu", 1, 4_646_732, 0.90, 40_000, 1.5),
    "kolkata": CityRecord("Kolkata", "West Bengal", 1, 4_496_694, 0.87, 32_000, 0.6),
    "pune": CityRecord("Pune", "Maharashtra", 1, 3_124_458, 0.89, 45_000, 2.8),
    "ahmedabad": CityRecord("Ahmedabad", "Gujarat", 1, 5_577_940, 0.88, 36_000, 2.2),
    # Tier 2
    "jaipur": CityRecord("Jaipur", "Rajasthan", 2, 3_046_163, 0.84, 28_000, 2.5),
    "lucknow": CityRecord("Lucknow", "Uttar Pradesh", 2, 2_817_105, 0.84, 26_000, 2.3),
    "surat": CityRecord("Surat", "Gujarat", 2, 4_467_797, 0.87, 32_000, 4.3),
    "kochi": CityRecord("Kochi", "Kerala", 2, 677_381, 0.97, 34_000, 1.2),
    "chandigarh": CityRecord("Chandigarh", "Chandigarh", 2, 960_787, 0.86, 40_000, 1.6),
    "indore": CityRecord("Indore", "Madhya Pradesh", 2, 1_964_086, 0.87, 27_000, 2.6),
    "coimbatore": CityRecord("Coimbatore", "Tamil Nadu", 2, 1_050_721, 0.91, 30_000, 1.8),
    "nagpur": CityRecord("Nagpur", "Maharashtra", 2, 2_405_665, 0.92, 28_000, 1.4),
    "vadodara": CityRecord("Vadodara", "Gujarat", 2, 1_670_806, 0.90, 30_000, 2.0),
    "bhopal": CityRecord("Bhopal", "Madhya Pradesh", 2, 1_798_218, 0.85, 25_000, 2.1),
    "visakhapatnam": CityRecord("Visakhapatnam", "Andhra Pradesh", 2, 1_728_128, 0.82, 26_000, 2.2),
    "mysore": CityRecord("Mysore", "Karnataka", 2, 920_550, 0.86, 26_000, 1.7),
    "thiruvananthapuram": CityRecord("Thiruvananthapuram", "Kerala", 2, 752_490, 0.94, 30_000, 1.0),
    "bhubaneswar": CityRecord("Bhubaneswar", "Odisha", 2, 837_737, 0.91, 26_000, 2.4),
    "patna": CityRecord("Patna", "Bihar", 2, 1_684_222, 0.84, 20_000, 2.3),
    "guwahati": CityRecord("Guwahati", "Assam", 2, 957_352, 0.91, 24_000, 2.1),
    "dehradun": CityRecord("Dehradun", "Uttarakhand", 2, 578_420, 0.89, 28_000, 2.2),
    "noida": CityRecord("Noida", "Uttar Pradesh", 2, 637_272, 0.87, 45_000, 4.0),
    "gurgaon": CityRecord("Gurgaon", "Haryana", 2, 876_969, 0.86, 55_000, 5.5),
    "mangalore": CityRecord("Mangalore", "Karnataka", 2, 484_785, 0.94, 30_000, 1.5),
    # Tier 3
    "nashik": CityRecord("Nashik", "Maharashtra", 3, 1_486_053, 0.89, 22_000, 2.0),
    "varanasi": CityRecord("Varanasi", "Uttar Pradesh", 3, 1_198_491, 0.80, 18_000, 1.6),
    "udaipur": CityRecord("Udaipur", "Rajasthan", 3, 451_100, 0.90, 22_000, 1.8),
    "madurai": CityRecord("Madurai", "Tamil Nadu", 3, 1_017_865, 0.90, 20_000, 1.1),
    "hubli": CityRecord("Hubli-Dharwad", "Karnataka", 3, 943_788, 0.87, 19_000, 1.4),
    "shimla": CityRecord("Shimla", "Himachal Pradesh", 3, 169_578, 0.94, 26_000, 1.0),
    "ranchi": CityRecord("Ranchi", "Jharkhand", 3, 1_073_427, 0.87, 20_000, 2.0),
    "raipur": CityRecord("Raipur", "Chhattisgarh", 3, 1_010_087, 0.86, 21_000, 2.3),
    "amritsar": CityRecord("Amritsar", "Punjab", 3, 1_132_383, 0.85, 22_000, 1.4),
    "tirupati": CityRecord("Tirupati", "Andhra Pradesh", 3, 287_035, 0.86, 18_000, 1.9),
}

_ALIASES = {
    "bombay": "mumbai",
    "new delhi": "delhi",
    "ncr": "delhi",
    "bengaluru": "bangalore",
    "blr": "bangalore",
    "madras": "chennai",
    "calcutta": "kolkata",
    "secunderabad": "hyderabad",
    "poona": "pune",
    "amdavad": "ahmedabad",
    "cochin": "kochi",
    "ernakulam": "kochi",
    "baroda": "vadodara",
    "vizag": "visakhapatnam",
    "mysuru": "mysore",
    "trivandrum": "thiruvananthapuram",
    "gurugram": "gurgaon",
    "greater noida": "noida",
    "mangaluru": "mangalore",
    "benares": "varanasi",
    "banaras": "varanasi",
    "hubballi": "hubli",
    "navi mumbai": "mumbai",
    "thane": "mumbai",
}

_NEIGHBORHOODS = {
    # Bangalore
    "koramangala": "bangalore",
    "indiranagar": "bangalore",
    "whitefield": "bangalore",
    "hsr layout": "bangalore",
    "jayanagar": "bangalore",
    "electronic city": "bangalore",
    "marathahalli": "bangalore",
    "malleshwaram": "bangalore",
    # Mumbai
    "andheri": "mumbai",
    "bandra": "mumbai",
    "powai": "mumbai",
    "dadar": "mumbai",
    "colaba": "mumbai",
    "juhu": "mumbai",
    "lower parel": "mumbai",
    "borivali": "mumbai",
    # Delhi
    "connaught place": "delhi",
    "saket": "delhi",
    "hauz khas": "delhi",
    "lajpat nagar": "delhi",
    "karol bagh": "delhi",
    "dwarka": "delhi",
    "chandni chowk": "delhi",
    # Chennai
    "t nagar": "chennai",
    "adyar": "chennai",
    "velachery": "chennai",
    "anna nagar": "chennai",
    # Kolkata
    "salt lake": "kolkata",
    "park street": "kolkata",
    "new town": "kolkata",
    # Hyderabad
    "hitech city": "hyderabad",
    "gachibowli": "hyderabad",
    "banjara hills": "hyderabad",
    "jubilee hills": "hyderabad",
    "madhapur": "hyderabad",
    # Pune
    "koregaon park": "pune",
    "hinjewadi": "pune",
    "kothrud": "pune",
    "viman nagar": "pune",
    # Ahmedabad
    "satellite": "ahmedabad",
    "navrangpura": "ahmedabad",
    # Jaipur
    "malviya nagar": "jaipur",
    "vaishali nagar": "jaipur",
}

DEFAULT_GAZETTEER = Gazetteer("2025.1", _CITIES, _ALIASES, _NEIGHBORHOODS)
