import asyncio
import json
import re
from typing import List, Optional
from loguru import logger

from recofeed.config import GENERIC_CUISINE, OPENAI_MODEL
from recofeed.clients import OpenAIClient
from recofeed.models import RecommendationCandidate

GENERIC_LABELS = {"restaurant", "food"}

SYSTEM_PROMPT = (
    "You are a cuisine classification expert with deep knowledge of global food cultures. "
    "Analyze restaurant information to determine the most accurate and specific cuisine type. "
    "Always respond with valid JSON only."
)

PROMPT_TEMPLATE = """Analyze this restaurant and determine its specific cuisine type based on the name and location details.

Restaurant Details:
- Name: "{name}"
- Address: "{address}"
- Place Types: {types}

Use specific categories such as Italian, French, Japanese, Mexican, Indian, Thai, Korean, Mediterranean, Spanish, Peruvian, Ethiopian.
For fusion restaurants name the fusion type (e.g. "Asian Fusion"). Never answer with generic terms like "Restaurant" or "Food".
If you cannot tell, answer "International".

Respond with a single JSON object in this exact format:
{{"cuisine": "Italian"}}
"""

NAME_PATTERNS = [
    (("sushi", "ramen", "hibachi", "tempura", "yakitori", "izakaya"), "Japanese"),
    (("pizza", "pizzeria", "ristorante", "trattoria", "osteria"), "Italian"),
    (("taco", "burrito", "cantina", "taqueria", "mexican"), "Mexican"),
    (("bistro", "brasserie", "cafe", "creperie"), "French"),
    (("dim sum", "wok", "noodle", "szechuan", "hunan"), "Chinese"),
    (("curry", "tandoor", "biryani", "masala"), "Indian"),
    (("pho", "vietnamese"), "Vietnamese"),
    (("bbq", "steakhouse", "grill", "smokehouse"), "American"),
    (("thai", "pad"), "Thai"),
    (("korean", "bulgogi", "kimchi"), "Korean"),
    (("mediterranean", "gyro", "kebab"), "Mediterranean"),
    (("greek", "souvlaki"), "Greek"),
    (("tapas", "paella"), "Spanish"),
    (("pub", "tavern", "alehouse"), "American Pub"),
]


def is_generic(cuisine: Optional[str]) -> bool:
    return not cuisine or cuisine.strip().lower() in GENERIC_LABELS


def cuisine_from_name(name: str) -> str:
    """Guess a cuisine from keywords in the restaurant name, else "International"."""
    lowered = (name or "").lower()
    for keywords, cuisine in NAME_PATTERNS:
        if any(k in lowered for k in keywords):
            return cuisine
    return "International"


def parse_cuisine_response(content: str) -> Optional[str]:
    """
    Pull the "cuisine" value out of an LLM answer.

    Tolerates markdown code fences and text around the JSON object.
    Returns None when no usable JSON object is found.
    """
    text = (content or "").strip()
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if fenced:
        text = fenced.group(1).strip()
    obj = re.search(r"\{[^}]*\}", text)
    if obj:
        text = obj.group(0)
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return None
    if not isinstance(parsed, dict):
        return None
    cuisine = parsed.get("cuisine")
    if not isinstance(cuisine, str) or not cuisine.strip():
        return None
    return cuisine.strip()


async def classify_cuisine(name: str, address: str, types: List[str]) -> str:
    """
    Ask the LLM for a specific cuisine label.

    An unparseable answer falls back to a name-keyword guess. Transport and
    API errors propagate to the caller.
    """
    openai_client = OpenAIClient()
    resp = await openai_client.chat_completions_create(
        model=OPENAI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": PROMPT_TEMPLATE.format(
                    name=name,
                    address=address or "Not provided",
                    types=", ".join(types) if types else "Not provided",
                ),
            },
        ],
        temperature=0.1,
        max_tokens=50,
    )
    content = resp.choices[0].message.content or ""
    cuisine = parse_cuisine_response(content)
    if cuisine is None:
        fallback = cuisine_from_name(name)
        logger.debug(f"Unparseable cuisine answer for '{name}': {content!r}, using {fallback}")
        return fallback
    return cuisine


async def enrich_one(candidate: RecommendationCandidate) -> None:
    """Replace a generic cuisine in place. Failures leave the candidate untouched."""
    try:
        cuisine = await classify_cuisine(candidate.name, candidate.address, candidate.types)
    except Exception as e:
        logger.debug(f"⚠️ Cuisine classification failed for '{candidate.name}': {e}")
        return
    if is_generic(cuisine):
        return
    logger.debug(f"🍽️ '{candidate.name}' → {cuisine}")
    candidate.cuisine = cuisine


async def enrich_candidates(
    candidates: List[RecommendationCandidate],
) -> List[RecommendationCandidate]:
    """
    Classify every candidate still labelled with the generic cuisine, in parallel.

    Args:
        candidates (List[RecommendationCandidate]): Batch to enrich; mutated in place.

    Returns:
        List[RecommendationCandidate]: The same list.
    """
    pending = [c for c in candidates if c.cuisine == GENERIC_CUISINE]
    if not pending:
        return candidates

    results = await asyncio.gather(*[enrich_one(c) for c in pending], return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            logger.debug(f"Enrichment task failed: {result}")
    return candidates
