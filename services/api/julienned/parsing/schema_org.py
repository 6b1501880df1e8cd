"""
schema.org Recipe extraction from JSON-LD.

Most recipe publishers embed a ``<script type="application/ld+json">`` block
describing the recipe. This module finds the first Recipe item in those
blocks (top-level object, arrays, or ``@graph`` containers) and maps it onto
our Recipe model. Microdata-only pages are not supported.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Union

from ..core.text import decode_html_entities
from ..schemas import Nutrition, ParsedIngredient, Recipe
from .passive_time import extract_passive_minutes

logger = logging.getLogger(__name__)

JSON_LD_RE = re.compile(
    r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>(.*?)</script>",
    re.IGNORECASE | re.DOTALL,
)

ISO_DURATION_RE = re.compile(r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?)?")

# Newlines, or just before "2. " style numbering
INSTRUCTION_SPLIT_RE = re.compile(r"\n|(?=\d+\.\s)")

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")
_ANY_INT_RE = re.compile(r"(\d+)")

NUTRITION_FIELDS = {
    "calories": "calories",
    "protein": "proteinContent",
    "carbs": "carbohydrateContent",
    "fat": "fatContent",
    "fiber": "fiberContent",
    "sodium": "sodiumContent",
}


# --- Instruction nodes ---
#
# recipeInstructions arrives in many shapes: plain strings, HowToStep
# objects, HowToSection objects wrapping itemListElement, bare objects with
# only "text", and whatever else publishers invent. Each raw node is
# classified once into one of these variants, then flattened.

@dataclass(frozen=True)
class InstructionStep:
    text: str


@dataclass(frozen=True)
class InstructionSection:
    name: Optional[str]
    children: List["InstructionNode"] = field(default_factory=list)


@dataclass(frozen=True)
class UnknownNode:
    raw: Any


InstructionNode = Union[InstructionStep, InstructionSection, UnknownNode]


def _types_of(obj: dict) -> List[str]:
    raw = obj.get("@type")
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list):
        return [t for t in raw if isinstance(t, str)]
    return []


def classify_instruction(raw: Any) -> InstructionNode:
    if isinstance(raw, str):
        return InstructionStep(raw)
    if not isinstance(raw, dict):
        return UnknownNode(raw)

    types = _types_of(raw)

    if "HowToSection" not in types:
        if "HowToStep" in types:
            text = raw.get("text") or raw.get("name")
            if text:
                return InstructionStep(str(text))
        elif isinstance(raw.get("text"), str) and raw["text"]:
            return InstructionStep(raw["text"])
        elif not types and isinstance(raw.get("name"), str) and raw["name"]:
            return InstructionStep(raw["name"])

    for key in ("itemListElement", "steps"):
        children = raw.get(key)
        if isinstance(children, list):
            name = raw.get("name") if isinstance(raw.get("name"), str) else None
            return InstructionSection(name, [classify_instruction(c) for c in children])

    return UnknownNode(raw)


def iter_steps(node: InstructionNode) -> Iterator[str]:
    """Depth-first leaf texts. Section names are headings, not steps."""
    if isinstance(node, InstructionStep):
        yield node.text
    elif isinstance(node, InstructionSection):
        for child in node.children:
            yield from iter_steps(child)


def flatten_instructions(raw: Any) -> List[str]:
    if isinstance(raw, str):
        steps = INSTRUCTION_SPLIT_RE.split(raw)
    elif isinstance(raw, list):
        steps = [s for item in raw for s in iter_steps(classify_instruction(item))]
    elif isinstance(raw, dict):
        steps = list(iter_steps(classify_instruction(raw)))
    else:
        return []

    decoded = (decode_html_entities(s) for s in steps if s)
    return [s for s in decoded if s]


# --- Field helpers ---

def parse_iso_duration(value: Any) -> Optional[int]:
    """
    ISO-8601 duration to minutes: "PT1H30M" -> 90.
    Zero, absent or unparseable durations return None.
    """
    if not value or not isinstance(value, str):
        return None
    match = ISO_DURATION_RE.search(value.strip().upper())
    if not match:
        return None
    days, hours, minutes = (int(g or 0) for g in match.groups())
    total = days * 24 * 60 + hours * 60 + minutes
    return total or None


def parse_servings(value: Any) -> Optional[int]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        servings = int(value)
    elif isinstance(value, str):
        match = _ANY_INT_RE.search(value)
        if not match:
            return None
        servings = int(match.group(1))
    else:
        return None
    return servings if servings > 0 else None


def parse_image(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return parse_image(value[0])
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        return url if isinstance(url, str) else None
    return None


def _leading_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def parse_nutrition(value: Any) -> Optional[Nutrition]:
    if not isinstance(value, dict):
        return None
    return Nutrition(**{
        name: _leading_int(value.get(key))
        for name, key in NUTRITION_FIELDS.items()
    })


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    return decode_html_entities(str(value)) or None


def recipe_from_schema(item: dict) -> Recipe:
    """Map a schema.org Recipe object onto Recipe."""
    raw_ingredients = item.get("recipeIngredient") or []
    if isinstance(raw_ingredients, str):
        raw_ingredients = [raw_ingredients]

    ingredients = [
        ParsedIngredient(text=decode_html_entities(text))
        for text in raw_ingredients
        if isinstance(text, str) and text.strip()
    ]

    instructions = flatten_instructions(item.get("recipeInstructions"))
    inactive = extract_passive_minutes(instructions)

    return Recipe(
        title=_as_text(item.get("name")) or "Untitled Recipe",
        description=_as_text(item.get("description")),
        ingredients=ingredients,
        instructions=instructions,
        servings=parse_servings(item.get("recipeYield")),
        prep_time=parse_iso_duration(item.get("prepTime")),
        cook_time=parse_iso_duration(item.get("cookTime")),
        total_time=parse_iso_duration(item.get("totalTime")),
        inactive_time=inactive if inactive > 0 else None,
        image_url=parse_image(item.get("image")),
        nutrition=parse_nutrition(item.get("nutrition")),
    )


def _is_recipe(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    raw = item.get("@type")
    if isinstance(raw, str):
        return "Recipe" in raw
    if isinstance(raw, list):
        return "Recipe" in raw
    return False


def _candidates(data: Any) -> Iterator[Any]:
    for schema in data if isinstance(data, list) else [data]:
        graph = schema.get("@graph") if isinstance(schema, dict) else None
        if isinstance(graph, list):
            yield from graph
        else:
            yield schema


def extract_from_markup(html: str) -> Optional[Recipe]:
    """
    Return the first schema.org Recipe found in the page's JSON-LD,
    or None. Malformed blocks are skipped.
    """
    if not html:
        return None

    for match in JSON_LD_RE.finditer(html):
        try:
            data = json.loads(match.group(1).strip())
            for item in _candidates(data):
                if _is_recipe(item):
                    return recipe_from_schema(item)
        except (ValueError, TypeError, AttributeError) as e:
            logger.debug("Skipping JSON-LD block: %s", e)
            continue

    return None
