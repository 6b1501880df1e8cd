"""
Site-specific CSS selector extraction.

Used for publishers we know well enough to target their markup directly.
Selectors are soupsieve syntax (BeautifulSoup ``select``); ``:-soup-contains``
stands in for jQuery's ``:contains``.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from ..core.text import clean_text
from ..schemas import ParsedIngredient, Recipe
from .passive_time import extract_passive_minutes
from .schema_org import extract_from_markup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteConfig:
    title: str
    ingredients: str
    instructions: str
    prep_time: Optional[str] = None
    cook_time: Optional[str] = None
    servings: Optional[str] = None
    image: Optional[str] = None


SITE_CONFIGS = {
    "allrecipes": SiteConfig(
        title="h1.headline, h1.article-heading",
        ingredients=".mntl-structured-ingredients__list-item",
        instructions=".mntl-sc-block-group--LI p",
        prep_time=".mntl-recipe-details__label:-soup-contains('Prep') + .mntl-recipe-details__value",
        cook_time=".mntl-recipe-details__label:-soup-contains('Cook') + .mntl-recipe-details__value",
        servings=".mntl-recipe-details__label:-soup-contains('Servings') + .mntl-recipe-details__value",
        image=".primary-image__image",
    ),
    "seriouseats": SiteConfig(
        title="h1.heading__title",
        ingredients=".structured-ingredients__list-item",
        instructions=".mntl-sc-block-group--LI p",
        image=".primary-image img",
    ),
}

_HOURS_RE = re.compile(r"(\d+)\s*(?:hours?|hrs?)\b", re.IGNORECASE)
_MINS_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?)\b", re.IGNORECASE)


def parse_human_duration(text: str) -> Optional[int]:
    """ "1 hr 15 mins" -> 75. None if no duration is present. """
    if not text:
        return None
    hours = sum(int(h) for h in _HOURS_RE.findall(text))
    minutes = sum(int(m) for m in _MINS_RE.findall(text))
    total = hours * 60 + minutes
    return total or None


def _first_text(soup: BeautifulSoup, selector: Optional[str]) -> Optional[str]:
    if not selector:
        return None
    el = soup.select_one(selector)
    if el is None:
        return None
    return clean_text(el.get_text(" ", strip=True)) or None


def _all_text(soup: BeautifulSoup, selector: str) -> List[str]:
    texts = (clean_text(el.get_text(" ", strip=True)) for el in soup.select(selector))
    return [t for t in texts if t]


def _image_src(soup: BeautifulSoup, selector: Optional[str]) -> Optional[str]:
    if not selector:
        return None
    el = soup.select_one(selector)
    if el is None:
        return None
    # Lazy-loaded images keep the real URL in data-src
    return el.get("data-src") or el.get("src") or None


def extract_with_selectors(html: str, site_name: str) -> Optional[Recipe]:
    """
    Extract a recipe from a known site's markup. Unknown sites return None;
    known sites whose selectors find nothing fall back to JSON-LD.
    """
    config = SITE_CONFIGS.get(site_name)
    if config is None or not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    title = _first_text(soup, config.title)
    ingredients = _all_text(soup, config.ingredients)
    instructions = _all_text(soup, config.instructions)

    if not (title and ingredients):
        logger.debug("Selectors for %s found nothing, trying JSON-LD", site_name)
        return extract_from_markup(html)

    servings_match = re.search(r"\d+", _first_text(soup, config.servings) or "")
    servings = int(servings_match.group(0)) if servings_match else None
    inactive = extract_passive_minutes(instructions)

    return Recipe(
        title=title,
        ingredients=[ParsedIngredient(text=t) for t in ingredients],
        instructions=instructions,
        servings=servings if servings else None,
        prep_time=parse_human_duration(_first_text(soup, config.prep_time) or ""),
        cook_time=parse_human_duration(_first_text(soup, config.cook_time) or ""),
        inactive_time=inactive if inactive > 0 else None,
        image_url=_image_src(soup, config.image),
    )
