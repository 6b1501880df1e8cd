"""
Tool registry for the LLM extraction orchestrator.

Each entry is ``{name, description, input_schema}`` with a JSON Schema for the
arguments. Names and argument names are a stable contract with the model
prompt; bump TOOLS_VERSION when changing either.
"""

TOOLS_VERSION = "2025-01"

_HTML_ARG = {
    "type": "string",
    "description": "Optional - HTML is automatically available from fetch_page.",
}

EXTRACTION_TOOLS = [
    # --- Cache ---
    {
        "name": "check_recipe_cache",
        "description": (
            "Check if a recipe URL has already been extracted and cached. ALWAYS call this "
            "first before attempting to fetch or extract. Returns the cached recipe if found."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The recipe URL to check in the cache"},
            },
            "required": ["url"],
        },
    },
    # --- Fetch ---
    {
        "name": "fetch_page",
        "description": (
            "Fetch the HTML of a web page. The HTML is kept server-side and is automatically "
            "available to extract_schema_recipe, extract_with_selectors and extract_generic. "
            "Returns fetch metadata (status, content type, html length), NOT the raw HTML."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The URL to fetch"},
                "headers": {
                    "type": "object",
                    "description": "Optional custom headers to send with the request",
                },
            },
            "required": ["url"],
        },
    },
    # --- Extraction ---
    {
        "name": "extract_schema_recipe",
        "description": (
            "Extract recipe data from schema.org JSON-LD markup. Most reliable method when "
            "available. Uses the HTML from the previous fetch_page call; you do NOT need to "
            "pass html."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "html": {
                    "type": "string",
                    "description": (
                        "Optional - HTML is automatically available from fetch_page. Only pass "
                        "this if you have HTML from another source."
                    ),
                },
            },
            "required": [],
        },
    },
    {
        "name": "extract_with_selectors",
        "description": (
            "Extract recipe data using CSS selectors for a known recipe site. Use when "
            "schema.org data is missing but the site structure is known. Uses the HTML "
            "from fetch_page."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "html": _HTML_ARG,
                "siteName": {
                    "type": "string",
                    "description": (
                        "The known site name (e.g. 'allrecipes', 'seriouseats') to pick "
                        "the matching selectors"
                    ),
                },
            },
            "required": ["siteName"],
        },
    },
    {
        "name": "extract_generic",
        "description": (
            "Extract recipe data using heuristics. Fallback when neither schema.org nor "
            "known-site selectors work. Uses the HTML from fetch_page."
        ),
        "input_schema": {
            "type": "object",
            "properties": {"html": _HTML_ARG},
            "required": [],
        },
    },
    # --- Ingredients ---
    {
        "name": "parse_ingredient",
        "description": (
            "Parse one ingredient string into quantity, unit, item and preparation. "
            "Example: '2 cups flour, sifted' -> {quantity: 2, unit: 'cups', item: 'flour', "
            "preparation: 'sifted'}"
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "ingredientText": {"type": "string", "description": "The ingredient text to parse"},
            },
            "required": ["ingredientText"],
        },
    },
    {
        "name": "parse_ingredients_batch",
        "description": (
            "Parse several ingredient strings at once. Prefer this over repeated "
            "parse_ingredient calls."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "ingredients": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Ingredient texts to parse",
                },
            },
            "required": ["ingredients"],
        },
    },
    {
        "name": "classify_ingredient",
        "description": (
            "Classify an ingredient into a shopping category (produce, dairy, "
            "meat_seafood, pantry, etc.)"
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "ingredient": {"type": "string", "description": "The ingredient name to classify"},
            },
            "required": ["ingredient"],
        },
    },
    # --- Images ---
    {
        "name": "download_image",
        "description": (
            "Validate and store a recipe image. Returns the URL to use for the recipe image."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "imageUrl": {"type": "string", "description": "The URL of the image"},
                "skipThumbnail": {
                    "type": "boolean",
                    "description": "Skip thumbnail generation (default: false)",
                },
            },
            "required": ["imageUrl"],
        },
    },
    # --- Save ---
    {
        "name": "save_recipe",
        "description": (
            "Save the extracted recipe. Call this once, after extraction, with all parsed data."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The original recipe URL"},
                "title": {"type": "string", "description": "Recipe title"},
                "description": {"type": "string", "description": "Recipe description (optional)"},
                "ingredients": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "text": {"type": "string"},
                            "quantity": {"type": "number"},
                            "unit": {"type": "string"},
                            "item": {"type": "string"},
                            "preparation": {"type": "string"},
                            "category": {"type": "string"},
                        },
                        "required": ["text"],
                    },
                    "description": "Parsed ingredients",
                },
                "instructions": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Recipe instructions, one step per entry",
                },
                "servings": {"type": "number", "description": "Number of servings"},
                "prepTime": {"type": "number", "description": "Prep time in minutes"},
                "cookTime": {"type": "number", "description": "Cook time in minutes"},
                "imageUrl": {"type": "string", "description": "Image URL from download_image"},
                "thumbnailUrl": {"type": "string", "description": "Thumbnail image URL"},
                "confidence": {"type": "number", "description": "Extraction confidence (0-1)"},
            },
            "required": ["url", "title", "ingredients", "instructions"],
        },
    },
]

ORCHESTRATOR_SYSTEM_PROMPT = """You are the recipe extraction agent for Julienned. Your job is to turn a recipe web page into clean, structured recipe data.

## RULES

1. **Check the cache first** with check_recipe_cache before fetching anything. If the recipe is cached, stop and report it.

2. **Extraction order:**
   a. Check cache (required first step)
   b. Fetch the page HTML with fetch_page
   c. Try extract_schema_recipe first (most reliable)
   d. Fall back to extract_with_selectors for known sites
   e. Use extract_generic as the last resort

3. **Parse all ingredients** with parse_ingredients_batch to get quantity/unit/item/category.

4. **Download the image** with download_image if the recipe has one.

5. **Save the recipe** at the end with save_recipe, including everything you extracted.

## PRIORITIES

- Title: required
- Ingredients: required, with quantities when possible
- Instructions: required, one step per entry
- Servings, prep time, cook time: include if available
- Image: include if available

## ERRORS

- If the fetch fails, report the error
- If the page has no recipe, say so clearly
- If extraction is partial, save what you have with a lower confidence

## RESPONSE

When finished, summarize briefly:
- Cached or freshly extracted
- Extraction method (schema / site-specific / generic)
- Confidence (high / medium / low)
- Any problems encountered"""
