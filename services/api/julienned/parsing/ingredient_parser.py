import re
from typing import Iterable, List, Optional

from ..schemas import IngredientCategory, ParsedIngredient

UNIT_RE = re.compile(
    r"^(cups?|tbsp|tsp|tablespoons?|teaspoons?|oz|ounces?|lbs?|pounds?|g|grams?|"
    r"kg|kilograms?|ml|milliliters?|l|liters?|pinch|dash|cloves?|cans?|packages?|"
    r"bunch(?:es)?|slices?|pieces?|heads?|stalks?|sprigs?|leaf|leaves)\.?$",
    re.IGNORECASE,
)

FRACTION_MAP = {
    "½": 0.5,
    "⅓": 0.333,
    "⅔": 0.667,
    "¼": 0.25,
    "¾": 0.75,
    "⅛": 0.125,
    "⅜": 0.375,
    "⅝": 0.625,
    "⅞": 0.875,
}

# "1½" and "1 ½" are mixed numbers; a lone "½" is just the fraction
_VULGAR_RE = re.compile(r"(\d+)?\s*([" + "".join(FRACTION_MAP) + r"])")

# Mixed numbers and fractions before plain numbers so "1/2" is not read as "1"
QUANTITY_RE = re.compile(
    r"^(\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?(?:\s*[-–]\s*\d+(?:\.\d+)?)?)(?![\d/])\s*"
)

# Buckets are checked in this order; specific terms ("onion powder")
# must win over generic produce words ("onion").
CATEGORY_ORDER: List[IngredientCategory] = [
    "spices",
    "canned",
    "condiments",
    "dairy",
    "meat_seafood",
    "bakery",
    "frozen",
    "beverages",
    "pantry",
    "produce",
    "other",
]

CATEGORY_KEYWORDS = {
    "produce": [
        "lettuce", "tomato", "onion", "garlic", "carrot", "potato", "celery",
        "pepper", "cucumber", "spinach", "kale", "broccoli", "cauliflower",
        "mushroom", "zucchini", "squash", "corn", "peas", "beans", "lemon",
        "lime", "orange", "apple", "banana", "berry", "avocado", "herb",
        "basil", "cilantro", "parsley", "mint", "rosemary", "thyme", "ginger",
    ],
    "meat_seafood": [
        "chicken", "beef", "pork", "lamb", "turkey", "bacon", "sausage",
        "ham", "steak", "ground", "salmon", "tuna", "shrimp", "fish",
        "crab", "lobster", "scallop", "cod", "tilapia", "anchovy",
    ],
    "dairy": [
        "milk", "cheese", "butter", "cream", "yogurt", "sour cream",
        "cottage cheese", "ricotta", "mozzarella", "parmesan", "cheddar",
        "egg", "eggs",
    ],
    "bakery": [
        "bread", "roll", "bun", "bagel", "croissant", "tortilla", "pita",
        "naan", "baguette",
    ],
    "pantry": [
        "flour", "sugar", "salt", "oil", "vinegar", "rice", "pasta",
        "noodle", "cereal", "oat", "quinoa", "lentil", "chickpea",
        "bean", "nut", "seed", "honey", "syrup", "vanilla", "baking",
    ],
    "frozen": ["frozen", "ice cream"],
    "canned": ["canned", "tomato sauce", "tomato paste", "broth", "stock", "coconut milk"],
    "spices": [
        "black pepper", "white pepper", "pepper flakes", "peppercorn",
        "garlic powder", "onion powder", "chipotle powder", "chili powder",
        "cumin", "paprika", "cinnamon", "nutmeg", "oregano", "cayenne",
        "basil", "thyme", "rosemary", "bay leaf", "curry", "turmeric",
        "seasoning", "spice", "powder",
    ],
    "condiments": [
        "ketchup", "mustard", "mayo", "mayonnaise", "soy sauce", "hot sauce",
        "worcestershire", "bbq", "salsa", "sriracha", "ranch", "dressing",
    ],
    "beverages": ["juice", "wine", "beer", "coffee", "tea", "water", "soda"],
    "other": [],
}

# Longest keyword first within each bucket
_SORTED_KEYWORDS = {
    category: sorted(words, key=len, reverse=True)
    for category, words in CATEGORY_KEYWORDS.items()
}


def classify_ingredient(text: str) -> IngredientCategory:
    """Grocery-aisle bucket for an ingredient (first keyword hit wins)."""
    lower = (text or "").lower()
    for category in CATEGORY_ORDER:
        for keyword in _SORTED_KEYWORDS[category]:
            if keyword in lower:
                return category
    return "other"


def _replace_vulgar_fractions(text: str) -> str:
    def _sub(m: re.Match) -> str:
        whole = int(m.group(1)) if m.group(1) else 0
        value = whole + FRACTION_MAP[m.group(2)]
        return f"{value:g} " if m.end() < len(text) and not text[m.end()].isspace() else f"{value:g}"
    return _VULGAR_RE.sub(_sub, text)


def _parse_quantity(q: str) -> Optional[float]:
    if "/" in q:
        total = 0.0
        for part in q.split():
            if "/" in part:
                num, den = part.split("/", 1)
                if int(den) == 0:
                    return None
                total += int(num) / int(den)
            else:
                total += float(part)
        return total
    # Ranges collapse to the lower bound, whichever side it is written on
    return min(float(n) for n in re.findall(r"\d+(?:\.\d+)?", q))


def parse_ingredient(raw: str) -> ParsedIngredient:
    """
    Best effort split of an ingredient line into quantity/unit/item/preparation.
    "2 1/2 cups flour, sifted" -> 2.5, "cups", "flour", "sifted".
    The original line is always kept verbatim in ``text``.
    """
    raw = raw if isinstance(raw, str) else str(raw or "")
    text = raw.strip()
    quantity: Optional[float] = None
    unit: Optional[str] = None
    preparation: Optional[str] = None

    # Preparation follows the last comma
    comma = text.rfind(",")
    if comma > 0:
        preparation = text[comma + 1:].strip() or None
        text = text[:comma].strip()

    text = _replace_vulgar_fractions(text)

    match = QUANTITY_RE.match(text)
    if match:
        quantity = _parse_quantity(match.group(1))
        text = text[match.end():].strip()

    words = text.split()
    if words and UNIT_RE.match(words[0]):
        unit = words[0].lower().rstrip(".")
        text = " ".join(words[1:]).strip()

    item = text
    return ParsedIngredient(
        text=raw,
        quantity=quantity,
        unit=unit,
        item=item,
        preparation=preparation,
        category=classify_ingredient(item or raw),
    )


def parse_ingredients(lines: Iterable[str]) -> List[ParsedIngredient]:
    return [parse_ingredient(line) for line in lines]
