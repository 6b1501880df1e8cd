import re
from typing import List, Tuple

# "2 hours", "30 minutes", "1 to 2 hrs", "4-6 mins"
_DURATION = r"(\d+(?:\s*(?:to|-)\s*\d+)?)\s*(hours?|minutes?|mins?|hrs?)"
_FOR = r"\s+(?:for\s+)?(?:at\s+least\s+)?"

# Order matters: an earlier pattern claims its span first.
PASSIVE_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    # Rising / proofing
    r"(?:let\s+)?(?:rise|proof|ferment)" + _FOR + _DURATION,
    r"(?:allow|leave)\s+(?:to\s+)?(?:rise|proof)" + _FOR + _DURATION,
    # Resting
    r"(?:let\s+)?rest" + _FOR + _DURATION,
    r"(?:let\s+)?(?:it\s+)?sit" + _FOR + _DURATION,
    r"(?:let\s+)?stand" + _FOR + _DURATION,
    # Chilling
    r"(?:chill|refrigerate|cool)" + _FOR + _DURATION,
    r"(?:in\s+(?:the\s+)?(?:fridge|refrigerator))" + _FOR + _DURATION,
    r"marinate" + _FOR + _DURATION,
    r"soak" + _FOR + _DURATION,
    r"freeze" + _FOR + _DURATION,
    # Desserts
    r"(?:let\s+)?set" + _FOR + _DURATION,
    r"(?:let\s+)?cool" + _FOR + _DURATION,
    # Generic waiting
    r"(?:wait|leave)" + _FOR + _DURATION,
)]

OVERNIGHT_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r"(?:chill|refrigerate|rest|rise|proof|marinate|soak|sit|stand|ferment)\s+overnight",
    r"overnight\s+(?:in\s+(?:the\s+)?(?:fridge|refrigerator)|chilling|rest)",
    r"leave\s+overnight",
    r"let\s+(?:it\s+)?(?:sit|rest|rise)\s+overnight",
)]

LONG_HOURS_PATTERN = re.compile(
    r"(\d+)\s*hours?\s*(?:\(|in\s+(?:the\s+)?(?:fridge|refrigerator))",
    re.IGNORECASE,
)

OVERNIGHT_MINUTES = 8 * 60

_RANGE_RE = re.compile(r"(\d+)\s*(?:to|-)\s*(\d+)")


def duration_to_minutes(value: str, unit: str) -> int:
    """Ranges ("1 to 2") count as their lower bound."""
    rng = _RANGE_RE.search(value)
    if rng:
        amount = min(int(rng.group(1)), int(rng.group(2)))
    else:
        amount = int(re.match(r"\d+", value).group(0))

    unit = unit.lower()
    if unit.startswith("hour") or unit in ("hr", "hrs"):
        return amount * 60
    return amount


def _overlaps(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(
        (s <= start < e) or (s < end <= e)
        for s, e in spans
    )


def extract_passive_minutes(instructions: List[str]) -> int:
    """
    Estimate unattended time (rising, chilling, marinating, ...) from
    instruction text. Returns total minutes, 0 when nothing is found.
    """
    if not instructions:
        return 0

    text = " ".join(s for s in instructions if s).lower()
    total = 0
    spans: List[Tuple[int, int]] = []

    for pattern in PASSIVE_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span()
            if _overlaps(start, end, spans):
                continue
            spans.append((start, end))
            total += duration_to_minutes(match.group(1), match.group(2))

    # Overnight with no explicit hours: assume 8h
    if "overnight" in text and total < OVERNIGHT_MINUTES:
        if any(p.search(text) for p in OVERNIGHT_PATTERNS):
            total = OVERNIGHT_MINUTES

    # "12 hours (or overnight)", "24 hours in the fridge"
    for match in LONG_HOURS_PATTERN.finditer(text):
        hours = int(match.group(1))
        if hours >= 8:
            total = max(total, hours * 60)

    return max(total, 0)
