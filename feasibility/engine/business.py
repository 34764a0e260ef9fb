"""Business-type classification and benchmark economics."""
import re
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from feasibility.models.profiles import BusinessProfile

logger = logging.getLogger(__name__)

GENERAL = "general"


@dataclass(frozen=True)
class CategoryRule:
    """Keywords match at a word start; keywords under four letters must match a whole word."""
    category: str
    keywords: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(re.search(_keyword_pattern(kw), text) for kw in self.keywords)


def _keyword_pattern(keyword: str) -> str:
    pattern = r"\b" + re.escape(keyword)
    return pattern + r"\b" if len(keyword) < 4 else pattern


class BenchmarkTable:
    """Ordered keyword rules plus one benchmark profile per category.

    Rule order is significant: the first matching rule wins, so specific
    categories must come before the broader ones that would also match.
    """

    def __init__(self, version: str, rules: tuple[CategoryRule, ...], profiles: Mapping[str, BusinessProfile]):
        if GENERAL not in profiles:
            raise ValueError("Benchmark table needs a 'general' fallback profile")
        for rule in rules:
            if rule.category not in profiles:
                raise ValueError(f"Rule for '{rule.category}' has no benchmark profile")
        self.version = version
        self.rules = rules
        self.profiles = MappingProxyType(dict(profiles))

    def profile(self, category: str) -> BusinessProfile:
        return self.profiles.get(category, self.profiles[GENERAL])


class BusinessClassifier:
    def __init__(self, table: BenchmarkTable | None = None):
        self.table = table or DEFAULT_BENCHMARKS

    def classify(self, business_idea: str) -> BusinessProfile:
        text = (business_idea or "").lower()
        for rule in self.table.rules:
            if rule.matches(text):
                logger.info(f"Business idea classified as '{rule.category}'")
                return self.table.profile(rule.category)
        logger.info("Business idea matched no category, using 'general'")
        return self.table.profile(GENERAL)


def _profile(category, label, cost, margin, growth, intensity, complexity, scalability) -> BusinessProfile:
    return BusinessProfile(
        category=category,
        label=label,
        minimum_setup_cost=cost,
        typical_margin=margin,
        growth_rate_percent=growth,
        competitive_intensity=intensity,
        complexity_score=complexity,
        scalability_score=scalability,
    )


_PROFILES = {p.category: p for p in (
    _profile("cloud_kitchen", "Cloud kitchen / tiffin service", 500_000, 0.18, 18, 0.70, 45, 70),
    _profile("food_stall", "Food truck / street food stall", 150_000, 0.25, 10, 0.75, 25, 35),
    _profile("restaurant_cafe", "Restaurant / cafe", 1_500_000, 0.15, 12, 0.80, 60, 50),
    _profile("bakery_sweets", "Bakery / sweet shop", 800_000, 0.22, 9, 0.65, 45, 45),
    _profile("food_general", "Food business", 400_000, 0.18, 10, 0.70, 40, 45),
    _profile("retail_fashion", "Clothing / fashion retail", 1_000_000, 0.30, 9, 0.75, 40, 50),
    _profile("ecommerce", "E-commerce / D2C brand", 300_000, 0.20, 22, 0.80, 50, 85),
    _profile("grocery", "Kirana / grocery store", 600_000, 0.10, 7, 0.60, 30, 35),
    _profile("pharmacy", "Pharmacy / medical store", 1_000_000, 0.18, 11, 0.55, 55, 40),
    _profile("healthcare", "Clinic / diagnostics", 2_500_000, 0.25, 14, 0.50, 80, 45),
    _profile("fitness", "Gym / fitness studio", 2_000_000, 0.25, 15, 0.60, 50, 45),
    _profile("salon", "Salon / spa", 800_000, 0.30, 10, 0.70, 35, 40),
    _profile("education", "Coaching / tuition centre", 300_000, 0.35, 12, 0.65, 35, 60),
    _profile("laundry", "Laundry / dry cleaning", 500_000, 0.25, 13, 0.45, 30, 55),
    _profile("agriculture", "Dairy / farming / agri", 1_000_000, 0.15, 8, 0.40, 55, 40),
    _profile("manufacturing", "Small-scale manufacturing", 5_000_000, 0.15, 9, 0.50, 75, 60),
    _profile("logistics", "Logistics / courier", 1_500_000, 0.12, 16, 0.65, 55, 65),
    _profile("tech", "Software / app / SaaS", 500_000, 0.30, 25, 0.75, 65, 90),
    _profile("services", "Consulting / agency services", 200_000, 0.35, 12, 0.60, 35, 55),
    _profile(GENERAL, "General small business", 500_000, 0.15, 10, 0.60, 50, 50),
)}

_RULES = (
    CategoryRule("cloud_kitchen", ("cloud kitchen", "ghost kitchen", "dark kitchen", "tiffin", "dabba", "meal prep", "home chef")),
    CategoryRule("food_stall", ("food truck", "food stall", "street food", "chaat", "momo stall", "tea stall", "chai stall")),
    CategoryRule("restaurant_cafe", ("restaurant", "cafe", "café", "coffee", "dhaba", "eatery", "bistro", "diner", "juice bar")),
    CategoryRule("bakery_sweets", ("bakery", "cake", "sweet shop", "mithai", "patisserie")),
    CategoryRule("food_general", ("food", "snack", "catering", "pickle", "spices")),
    CategoryRule("retail_fashion", ("clothing", "apparel", "boutique", "garment", "fashion", "saree", "tailor", "footwear")),
    CategoryRule("ecommerce", ("e-commerce", "ecommerce", "online store", "d2c", "online selling", "marketplace", "dropship")),
    CategoryRule("grocery", ("kirana", "grocery", "supermarket", "general store", "provision store")),
    CategoryRule("pharmacy", ("pharmacy", "medical store", "chemist", "medicine shop")),
    CategoryRule("healthcare", ("clinic", "diagnostic", "dental", "physiotherapy", "healthcare", "pathology", "hospital")),
    CategoryRule("fitness", ("gym", "fitness", "yoga", "crossfit", "zumba")),
    CategoryRule("salon", ("salon", "spa", "beauty parlour", "beauty parlor", "barber", "unisex parlour")),
    CategoryRule("education", ("tuition", "coaching", "tutoring", "preschool", "play school", "classes", "academy", "education")),
    CategoryRule("laundry", ("laundry", "dry clean", "ironing", "laundromat")),
    CategoryRule("agriculture", ("dairy", "farm", "poultry", "agri", "organic farming", "goat", "fishery", "hydroponic")),
    CategoryRule("manufacturing", ("manufactur", "factory", "production unit", "fabrication", "packaging unit")),
    CategoryRule("logistics", ("logistics", "courier", "delivery service", "transport", "warehous", "fleet")),
    CategoryRule("tech", ("software", "saas", "app", "apps", "platform", "website", "tech", "artificial intelligence", "machine learning")),
    CategoryRule("services", ("consult", "agency", "marketing", "freelanc", "event management", "photography")),
)

DEFAULT_BENCHMARKS = BenchmarkTable("2025.1", _RULES, _PROFILES)
