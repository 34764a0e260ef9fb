import re
from dataclasses import dataclass

from feasibility.models.request import NOT_SPECIFIED

DEFAULT_BUDGET = 500_000.0

LAKH = 100_000
CRORE = 10_000_000
THOUSAND = 1_000

_NOISE_RE = re.compile(r"[₹$,\s]")
_PREFIX_RE = re.compile(r"^(?:rs\.?|inr)")
_NUMBER_RE = re.compile(r"\d*\.?\d+")


def _multiplier(clean: str) -> int:
    # Order matters: "lakh" before "l", "crore"/"cr" before "k".
    if "lakh" in clean or "lac" in clean:
        return LAKH
    if "crore" in clean or "cr" in clean:
        return CRORE
    if clean.endswith("l"):
        return LAKH
    if "k" in clean:
        return THOUSAND
    return 1


def parse_budget(raw: str | None) -> float:
    """Parse an Indian-shorthand budget ("15 lakhs", "₹2.5 Cr", "50k") into rupees.

    Returns DEFAULT_BUDGET when the input is absent, the NOT_SPECIFIED
    sentinel, or contains no number. Never raises.
    """
    if not raw or not isinstance(raw, str) or raw.strip() == NOT_SPECIFIED:
        return DEFAULT_BUDGET
    clean = _PREFIX_RE.sub("", _NOISE_RE.sub("", raw.lower()))
    match = _NUMBER_RE.search(clean)
    if not match:
        return DEFAULT_BUDGET
    return float(match.group(0)) * _multiplier(clean)


@dataclass(frozen=True)
class BudgetAmount:
    amount: float
    raw: str
    specified: bool

    @classmethod
    def from_raw(cls, raw: str | None) -> "BudgetAmount":
        text = (raw or "").strip()
        specified = bool(text) and text != NOT_SPECIFIED and _NUMBER_RE.search(text) is not None
        return cls(amount=parse_budget(raw), raw=text or NOT_SPECIFIED, specified=specified)
