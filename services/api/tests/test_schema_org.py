import json

from julienned.parsing.schema_org import (
    InstructionSection,
    InstructionStep,
    UnknownNode,
    classify_instruction,
    extract_from_markup,
    flatten_instructions,
    parse_image,
    parse_iso_duration,
    parse_servings,
)


def _ld(data) -> str:
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


def test_extracts_full_recipe(pancakes_html):
    recipe = extract_from_markup(pancakes_html)

    assert recipe is not None
    assert recipe.title == "Fluffy Pancakes"
    assert recipe.description == "Weekend pancakes & syrup"
    assert [i.text for i in recipe.ingredients][0] == "1 1/2 cups all-purpose flour"
    assert len(recipe.ingredients) == 4
    assert recipe.instructions == [
        "Whisk the dry ingredients.",
        "Add the wet ingredients and let rest for 10 minutes.",
        "Cook on a hot griddle.",
    ]
    assert recipe.servings == 4
    assert (recipe.prep_time, recipe.cook_time, recipe.total_time) == (10, 20, 40)
    assert recipe.inactive_time == 10
    assert recipe.image_url == "https://cdn.example.com/pancakes.jpg"
    assert recipe.nutrition.calories == 350
    assert recipe.nutrition.protein == 9
    assert recipe.nutrition.fat is None


def test_finds_recipe_inside_graph():
    html = _ld({
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "WebPage", "name": "Page"},
            {"@type": ["Recipe", "NewsArticle"], "name": "Graph Soup", "recipeIngredient": ["1 cup stock"]},
        ],
    })
    recipe = extract_from_markup(html)
    assert recipe.title == "Graph Soup"


def test_skips_malformed_blocks():
    html = '<script type="application/ld+json">{not json</script>' + _ld(
        {"@type": "Recipe", "name": "Second Block", "recipeIngredient": ["salt"]}
    )
    assert extract_from_markup(html).title == "Second Block"


def test_no_recipe():
    assert extract_from_markup("<html><body>Nothing here</body></html>") is None
    assert extract_from_markup(_ld({"@type": "Organization", "name": "Acme"})) is None
    assert extract_from_markup("") is None


def test_missing_name_gets_placeholder():
    recipe = extract_from_markup(_ld({"@type": "Recipe", "recipeIngredient": ["salt"]}))
    assert recipe.title == "Untitled Recipe"


def test_sections_are_flattened_without_headings():
    raw = [
        {
            "@type": "HowToSection",
            "name": "For the dough",
            "itemListElement": [
                {"@type": "HowToStep", "text": "Mix flour and water."},
                {"@type": "HowToStep", "text": "Knead."},
            ],
        },
        {
            "@type": "HowToSection",
            "name": "For the filling",
            "itemListElement": [{"@type": "HowToStep", "name": "Chop apples."}],
        },
        "Assemble &amp; bake.",
    ]
    assert flatten_instructions(raw) == [
        "Mix flour and water.",
        "Knead.",
        "Chop apples.",
        "Assemble & bake.",
    ]


def test_string_instructions_split_on_numbering():
    assert flatten_instructions("1. Mix. 2. Bake.") == ["1. Mix.", "2. Bake."]
    assert flatten_instructions("Mix.\nBake.\n") == ["Mix.", "Bake."]


def test_classify_instruction_variants():
    assert classify_instruction("Stir") == InstructionStep("Stir")
    assert classify_instruction({"@type": "HowToStep", "name": "Stir"}) == InstructionStep("Stir")
    assert classify_instruction({"text": "Whisk"}) == InstructionStep("Whisk")
    section = classify_instruction({"@type": "HowToSection", "name": "Sauce", "itemListElement": []})
    assert isinstance(section, InstructionSection)
    assert section.name == "Sauce"
    assert isinstance(classify_instruction(42), UnknownNode)
    assert flatten_instructions([42, {"@type": "HowToStep"}]) == []


def test_parse_iso_duration():
    assert parse_iso_duration("PT1H30M") == 90
    assert parse_iso_duration("pt45m") == 45
    assert parse_iso_duration("P1DT2H") == 1560
    assert parse_iso_duration("P1D") == 1440
    assert parse_iso_duration("PT0M") is None
    assert parse_iso_duration("PT0H0M") is None
    assert parse_iso_duration("soon") is None
    assert parse_iso_duration(None) is None


def test_parse_servings():
    assert parse_servings(["6", "6 servings"]) == 6
    assert parse_servings("Makes 12 cookies") == 12
    assert parse_servings(4.0) == 4
    assert parse_servings(0) is None
    assert parse_servings("a few") is None
    assert parse_servings(None) is None


def test_parse_image():
    assert parse_image(["https://a/1.jpg", "https://a/2.jpg"]) == "https://a/1.jpg"
    assert parse_image({"url": "https://a/3.jpg"}) == "https://a/3.jpg"
    assert parse_image([{"@type": "ImageObject", "url": "https://a/4.jpg"}]) == "https://a/4.jpg"
    assert parse_image(None) is None
