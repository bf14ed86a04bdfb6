"""Prompts for the Ollama inference provider."""

CLASSIFY_FOOD_PROMPT = """You are a food identification expert. Look at this image and decide whether it shows food.

If it shows food, identify the dish and describe it.

Respond ONLY with valid JSON in this format:
{
  "label": "<name of the dish, or what the image shows if it is not food>",
  "confidence": <0.0-1.0>,
  "is_food": <true/false>,
  "food_details": {
    "ingredients": ["<ingredient>", "..."],
    "nutritional_summary": "<one or two sentences>",
    "region": "<region or country of origin>",
    "history": "<one or two sentences of cultural background>"
  },
  "alternative_suggestions": ["<other dish this could be>", "..."]
}

RULES:
- If the image is not food, set "is_food" to false and "food_details" to null
- If it is food but you cannot tell its ingredients, set "food_details" to null
- List the most likely ingredients, including common hidden ones (butter, flour, eggs, nuts)
- Return at most 3 alternative suggestions

Do not include any text outside the JSON."""


EXTRACT_TEXT_PROMPT = """You are reading a photo of a product label.

Transcribe the ingredient list (and any allergen statement such as "Contains: ..." or
"May contain: ...") exactly as printed. Do not translate, summarize or correct it.

Respond ONLY with valid JSON in this format:
{
  "text": "<the transcribed text>"
}

If no readable text is visible, return {"text": ""}.

Do not include any text outside the JSON."""


DETECT_ALLERGENS_PROMPT = """You are a food allergy assistant. Check the ingredients below against the user's allergens.

User allergens: {allergens}

Ingredients:
{ingredients}

Consider derived ingredients (e.g. whey and casein come from milk, semolina from wheat)
and "may contain" statements.

Respond ONLY with valid JSON in this format:
{{
  "risk_level": "<HIGH | MODERATE | SAFE>",
  "allergen_detected": <true/false>,
  "detected_allergens": ["<user allergen found>", "..."]
}}

RULES:
- HIGH: a user allergen is clearly an ingredient
- MODERATE: possible cross-contamination or an ambiguous ingredient
- SAFE: none of the user allergens are present
- Only list allergens from the user's list

Do not include any text outside the JSON."""


RECOMMEND_SAFE_FOODS_PROMPT = """You are a nutrition assistant. Recommend foods that are safe for this user.

Allergens to avoid: {allergens}
Dietary preferences: {dietary_preferences}
Nutrition goals: {nutrition_goals}
Cuisine preference: {cuisine_preference}

Respond ONLY with valid JSON in this format:
{{
  "recommendations": [
    {{
      "name": "<food name>",
      "description": "<short description>",
      "reasoning": "<why it is a good choice for this profile>",
      "image_hint": "<one or two keywords describing the food>"
    }}
  ],
  "overall_reasoning": "<one paragraph>"
}}

RULES:
- Recommend 3 to 6 foods
- Never recommend a food containing any of the allergens

Do not include any text outside the JSON."""
