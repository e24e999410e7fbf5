"""
Menu-image OCR through an OpenAI vision model.

Some corners post their menu as an image instead of a table. The model is
asked to read the image and answer with JSON matching ``MEAL_SCHEMA``; the
result is best-effort and is returned as plain dicts, not ``Meal`` records.
"""
import base64
import json
import logging
import os
import re
from typing import Dict, List, Optional

import requests
from openai import OpenAI

from .day import DAYS_OF_WEEK
from .meal import MEAL_TYPES, RESTAURANTS

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

MEAL_SCHEMA = {
    "type": "object",
    "properties": {
        "meals": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "restaurant": {"type": "string", "enum": list(RESTAURANTS)},
                    "day": {"type": "string", "enum": list(DAYS_OF_WEEK)},
                    "mealType": {"type": "string", "enum": list(MEAL_TYPES)},
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "price": {"type": ["number", "null"]},
                                "description": {"type": ["string", "null"]},
                            },
                            "required": ["name", "price", "description"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["restaurant", "day", "mealType", "items"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["meals"],
    "additionalProperties": False,
}

OCR_PROMPT = (
    "이 이미지는 동국대학교 생협 식당의 메뉴표입니다.\n"
    "Read every menu entry in the image and return them grouped by restaurant, day and meal.\n"
    "Use only the restaurant, day and mealType values allowed by the schema.\n"
    "Prices are in KRW without decimals (\"6,500원\" -> 6500); use null when no price is shown.\n"
    "Put side notes such as 원산지 or 한정판매 in description, not in name.\n"
)


def build_openai_client(api_key: Optional[str] = None) -> OpenAI:
    """
    Create the OpenAI client once at startup; callers pass it around.
    """
    api_key = api_key or os.getenv('OPENAI_API_KEY')
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set.")
    return OpenAI(api_key=api_key)


def _safe_json_extract(text: str) -> Optional[object]:
    """
    Try to extract a JSON object or array from arbitrary text.
    """
    if not text:
        return None
    # Fast path: direct JSON
    try:
        return json.loads(text)
    except ValueError:
        pass
    # Fallback: first {...} or [...] block
    for pattern in (r"\{[\s\S]*\}", r"\[[\s\S]*\]"):
        match = re.search(pattern, text)
        if match:
            try:
                return json.loads(match.group(0))
            except ValueError:
                continue
    return None


def _image_data_url(image_url: str, session: requests.Session, timeout: float) -> str:
    response = session.get(image_url, timeout=timeout)
    response.raise_for_status()
    mime_type = response.headers.get('Content-Type', 'image/jpeg').split(';')[0].strip() or 'image/jpeg'
    encoded = base64.b64encode(response.content).decode('ascii')
    return f"data:{mime_type};base64,{encoded}"


def ocr_menu_image(image_url: str, client: OpenAI, model: Optional[str] = None,
                   session: Optional[requests.Session] = None, timeout: float = 15) -> List[Dict]:
    """
    Read a menu image with the vision model.

    Parameters:
        image_url (str): Where the menu image lives.
        client (OpenAI): Client from build_openai_client().
        model (str): Model name; defaults to OPENAI_MODEL or DEFAULT_MODEL.
        session: HTTP session used to download the image. When omitted, a
            fresh one is created and closed after the download.
        timeout (float): Download timeout in seconds.

    Returns:
        List[Dict]: Meals as {restaurant, day, mealType, items: [{name, price,
        description}]}; empty when the model answered without usable JSON.
    """
    model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)

    if session is None:
        with requests.Session() as own_session:
            data_url = _image_data_url(image_url, own_session, timeout)
    else:
        data_url = _image_data_url(image_url, session, timeout)

    response = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": "You are a careful assistant that outputs only valid JSON."},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": OCR_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ],
        response_format={
            "type": "json_schema",
            "json_schema": {"name": "dgucoop_meals", "strict": True, "schema": MEAL_SCHEMA},
        },
    )
    text = (response.choices[0].message.content or "") if getattr(response, "choices", None) else ""

    parsed = _safe_json_extract(text)
    if isinstance(parsed, dict):
        parsed = parsed.get("meals")
    if not isinstance(parsed, list):
        logger.warning("OCR for %s returned no usable JSON", image_url)
        return []
    return parsed
