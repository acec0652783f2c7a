"""LLM prompt templates for recipe extraction and OCR."""

import json
from dataclasses import dataclass

LANGUAGE_NAMES = {"en": "English", "de": "German"}

# Character budgets for content placed in user prompts
HTML_WITH_JSON_LD_LIMIT = 15000
HTML_ONLY_LIMIT = 25000
TEXT_LIMIT = 25000
TRANSCRIPT_MARKER = "\n... [transcript truncated]"
TEXT_MARKER = "\n... [text truncated]"

OUTPUT_SCHEMA = """{
  "is_valid_recipe": boolean,
  "error_message": string | null,
  "recipe": {
    "name": string,
    "author": string | null,
    "description": string | null,
    "prep_time_minutes": number | null,
    "cook_time_minutes": number | null,
    "recipe_yield": string | null,
    "category": string | null,
    "cuisine": string | null,
    "keywords": string[],
    "image_url": string | null
  } | null,
  "steps": [{ "step_number": number, "instruction": string, "duration_minutes": number | null }] | null,
  "ingredients": [{
    "name_en": string,
    "name_de": string,
    "quantity": number | null,
    "measurement_type": string | null,
    "notes": string | null,
    "is_new": boolean,
    "existing_ingredient_id": number | null
  }] | null
}"""

EMOJI_GUIDE = """### Emoji Prefix (REQUIRED at start of each instruction):
Choose a SINGLE fitting emoji that represents the step.
1. Main ingredient, if the step focuses on one: 🧅 onion, 🥕 carrot, 🍅 tomato, 🥔 potato,
   🧄 garlic, 🥩 meat, 🍗 chicken, 🐟 fish, 🥚 egg, 🧀 cheese, 🧈 butter, 🍝 pasta, 🍚 rice
2. Otherwise the cooking action: 🔪 cutting, 🔥 heating, 🥄 stirring, 🫗 pouring,
   🧂 seasoning, ♨️ baking, ❄️ chilling, ⏲️ waiting
3. Otherwise the tool or result: 🍳 pan, 🥘 pot, 🥣 bowl, 🍽️ serving, ✨ finishing

Format: [emoji] [instruction text]"""

EMOJI_EXAMPLES = {
    "de": [
        "🧅 Zwiebeln in feine Würfel schneiden",
        "🔥 Öl in der Pfanne erhitzen",
        "🧀 Mit geriebenem Käse bestreuen",
    ],
    "en": [
        "🧅 Dice the onions into small cubes",
        "🔥 Heat oil in a large pan",
        "🧀 Top with grated cheese",
    ],
}

SOURCE_CONTEXT = {
    "webpage": "Extract structured recipe data from webpage content.",
    "transcript": """Extract structured recipe data from the spoken transcript of a cooking video.

## Important Context: This text is a video transcript
- Quantities and steps are spoken, often informally and out of order
- Use the video title and description as additional context
- If quantities are not stated, set quantity to null rather than guessing""",
    "ocr": """Extract structured recipe data from OCR-extracted text.

## Important Context: This text was extracted from an image or PDF
- The text may contain OCR errors or unclear sections
- The original may have been handwritten
- Use context to correct obvious OCR errors (e.g., "1/2" vs "1/z", "tbsp" vs "thsp")
- If quantities seem wrong, use cooking knowledge to estimate reasonable amounts""",
}

IMAGE_OCR_PROMPT = """Extract ALL text from this recipe image. This may be:
- A printed recipe from a cookbook or magazine
- A handwritten recipe card
- A screenshot of a recipe

IMPORTANT:
- Transcribe EVERYTHING exactly as written
- Preserve the structure (title, ingredients list, instructions)
- Include quantities, measurements, and cooking times
- If handwriting is unclear, make your best interpretation and note [unclear]
- Separate ingredients from instructions clearly

Output the complete recipe text, maintaining the original formatting where possible."""

PDF_OCR_PROMPT = """Extract ALL recipe content from this PDF document.

IMPORTANT:
- Include recipe titles, ingredients with quantities, and full instructions
- Preserve cooking times, temperatures, and serving sizes
- If multiple recipes exist, separate them clearly
- If handwritten content is present, transcribe as accurately as possible
- Maintain the structure of each recipe

Output the complete recipe text."""


@dataclass
class PromptContext:
    """Vocabulary and language policy shared by all extraction prompts."""

    ingredients: list[dict]  # {"id", "name_en", "name_de"}
    measurement_types: list[dict]  # {"name_en", "name_de"}
    language: str = "en"
    reword: bool = True

    @property
    def language_name(self) -> str:
        return LANGUAGE_NAMES.get(self.language, "English")


def truncate(text: str, max_length: int, marker: str = "\n... [truncated]") -> str:
    if len(text) > max_length:
        return text[:max_length] + marker
    return text


def _ingredient_vocabulary(ctx: PromptContext) -> str:
    if not ctx.ingredients:
        return "No existing ingredients yet - all ingredients will be new."
    return "\n".join(f"- {i['id']}: {i['name_en']} / {i['name_de']}" for i in ctx.ingredients)


def _measurement_vocabulary(ctx: PromptContext) -> str:
    return "\n".join(f"- {m['name_en']} ({m['name_de']})" for m in ctx.measurement_types)


def _language_rules(ctx: PromptContext) -> str:
    if ctx.reword:
        name = ctx.language_name.upper()
        return f"""## CRITICAL: Output Language = {name}
- Recipe name, description, category, cuisine: MUST be in {ctx.language_name}
- All step instructions: MUST be in {ctx.language_name}
- Ingredient notes: MUST be in {ctx.language_name}"""
    return """## CRITICAL: Keep Original Language
- Recipe name, description, category, cuisine: Keep in ORIGINAL language from source
- All step instructions: Keep in ORIGINAL wording, only add the emoji prefix
- Ingredient notes: Keep in ORIGINAL language"""


def _step_rules(ctx: PromptContext) -> str:
    wording = (
        "- Simplify cooking steps to single, clear actions. Split complex steps into simpler ones.\n"
        "- Use imperative mood (\"Chop the onions\", not \"The onions should be chopped\")"
        if ctx.reword
        else "- Keep the ORIGINAL text from the source - do NOT reword or simplify"
    )
    examples = "\n".join(f'- "{e}"' for e in EMOJI_EXAMPLES.get(ctx.language, EMOJI_EXAMPLES["en"]))
    return f"""## Step Formatting Rules:
- IMPORTANT: You MUST extract ALL cooking steps from the recipe. Do not skip any steps.
- Preserve the original order and include specific times and temperatures
{wording}

{EMOJI_GUIDE}

### Examples:
{examples}"""


def build_system_prompt(ctx: PromptContext, source: str) -> str:
    """Build the extraction system prompt for a source type ("webpage", "transcript", "ocr")."""
    translate = (
        f"Extract all recipe details and translate EVERYTHING to {ctx.language_name}."
        if ctx.reword
        else "Extract all details, keeping the original language (only add the emoji prefix to steps)."
    )
    return f"""You are a recipe extraction assistant. {SOURCE_CONTEXT[source]}

{_language_rules(ctx)}

## Your Task:
1. Validate the content contains a recipe. Set is_valid_recipe=false and explain in error_message if not.
2. {translate}
3. CRITICAL: For EVERY ingredient provide BOTH name_en (English) and name_de (German).
   These MUST be actual translations, not duplicates.
4. Match ingredients to the existing ones below when possible: set is_new=false and
   existing_ingredient_id to its id. Set is_new=true only for unmatched ingredients.
5. Use ONLY the measurement types listed below (English name). Use null if none fits.

## Existing Ingredients (id: name_en / name_de):
{_ingredient_vocabulary(ctx)}

## Valid Measurement Types (use English name in output):
{_measurement_vocabulary(ctx)}

{_step_rules(ctx)}

## Output Format:
Respond with ONLY valid JSON (no markdown, no explanation). The JSON must match this schema:
{OUTPUT_SCHEMA}"""


def build_webpage_prompt(html_text: str, json_ld: dict | None) -> str:
    """User prompt for a webpage, with the pre-extracted JSON-LD block when available."""
    if json_ld:
        content = f"""## Pre-extracted JSON-LD Recipe Data:
{json.dumps(json_ld, indent=2, ensure_ascii=False, default=str)}

## Page Text (for additional context, especially cooking instructions):
{truncate(html_text, HTML_WITH_JSON_LD_LIMIT)}"""
    else:
        content = f"""## Page Text:
{truncate(html_text, HTML_ONLY_LIMIT)}"""

    return f"""Extract the recipe from this webpage:

{content}

Return ONLY the JSON object, no other text."""


def build_transcript_prompt(
    transcript: str,
    title: str,
    author: str,
    description: str | None,
) -> str:
    """User prompt for a video transcript plus its metadata."""
    return f"""Extract the recipe from this cooking video:

## Video Title:
{title}

## Channel / Author:
{author}

## Video Description:
{truncate(description or "(none)", 5000)}

## Transcript:
{truncate(transcript, TEXT_LIMIT, TRANSCRIPT_MARKER)}

Use the author above for recipe.author unless the transcript names someone else.
Return ONLY the JSON object, no other text."""


def build_ocr_text_prompt(extracted_text: str) -> str:
    """User prompt for text produced by the OCR step."""
    return f"""Extract the recipe from this OCR-extracted text:

## Extracted Text (from image/PDF):
{truncate(extracted_text, TEXT_LIMIT, TEXT_MARKER)}

NOTES:
- This text was extracted via OCR, so there may be minor errors
- Use context to correct obvious OCR errors
- image_url must be null

Return ONLY the JSON object, no other text."""
