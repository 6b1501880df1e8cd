"""
Heuristic recipe extraction for pages without usable structured data.

JSON-LD is tried first. Otherwise we look for the list that reads most like
an ingredient list (measurements, numbers) and the list following an
"Instructions"/"Directions"/"Method" heading.
"""
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from ..core.text import clean_text
from ..schemas import ParsedIngredient, Recipe
from .passive_time import extract_passive_minutes
from .schema_org import extract_from_markup

MEASURE_RE = re.compile(
    r"\d|[½⅓⅔¼¾⅛⅜⅝⅞]|\b(cups?|tsp|tbsp|tablespoons?|teaspoons?|ounces?|oz|grams?|g|kg|ml|l|lbs?|pounds?|pinch)\b",
    re.IGNORECASE,
)
INSTRUCTION_HEADING_RE = re.compile(r"direction|instruction|method|preparation", re.IGNORECASE)


def _strip_boilerplate(soup: BeautifulSoup) -> None:
    for noisy in soup.find_all(["header", "footer", "nav", "aside", "form"]):
        noisy.decompose()
    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()


def _find_container(soup: BeautifulSoup):
    return (
        soup.find(attrs={"itemtype": re.compile("Recipe", re.I)})
        or soup.find(class_=re.compile(r"recipe", re.I))
        or soup.find("article")
        or soup.find("main")
        or soup.body
    )


def _find_title(soup: BeautifulSoup) -> Optional[str]:
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and og.get("content"):
        return clean_text(og["content"]) or None
    tag = soup.find("h1") or soup.title
    return clean_text(tag.get_text(" ", strip=True)) if tag else None


def _find_ingredients(container) -> List[str]:
    best: List[str] = []
    best_score = -1
    for lst in container.find_all(["ul", "ol"]):
        items = [clean_text(li.get_text(" ", strip=True)) for li in lst.find_all("li")]
        items = [i for i in items if i]
        if len(items) < 2:
            continue
        matches = sum(1 for item in items if MEASURE_RE.search(item))
        if matches < max(2, len(items) // 2):
            continue
        score = matches * 2 + len(items)
        if score > best_score:
            best, best_score = items, score
    return best


def _find_instructions(container, ingredients: List[str]) -> List[str]:
    steps: List[str] = []
    heading = container.find(string=INSTRUCTION_HEADING_RE)
    if heading and heading.parent:
        sibling = heading.parent.find_next_sibling(["ol", "ul", "div"])
        if sibling is not None:
            if sibling.name in ("ol", "ul"):
                steps = [li.get_text(" ", strip=True) for li in sibling.find_all("li")]
            else:
                steps = [p.get_text(" ", strip=True) for p in sibling.find_all(["p", "li"])]
    if not steps:
        for lst in container.find_all("ol"):
            candidate = [li.get_text(" ", strip=True) for li in lst.find_all("li")]
            if candidate and [clean_text(c) for c in candidate] != ingredients:
                steps = candidate
                break
    return [s for s in (clean_text(s) for s in steps) if s]


def extract_generic(html: str) -> Optional[Recipe]:
    """Best-effort extraction from arbitrary recipe HTML."""
    if not html:
        return None

    structured = extract_from_markup(html)
    if structured is not None:
        return structured

    soup = BeautifulSoup(html, "html.parser")
    title = _find_title(soup)
    _strip_boilerplate(soup)
    container = _find_container(soup)
    if container is None:
        return None

    ingredients = _find_ingredients(container)
    instructions = _find_instructions(container, ingredients)
    if not (title and ingredients and instructions):
        return None

    inactive = extract_passive_minutes(instructions)
    return Recipe(
        title=title,
        ingredients=[ParsedIngredient(text=t) for t in ingredients],
        instructions=instructions,
        inactive_time=inactive if inactive > 0 else None,
    )
