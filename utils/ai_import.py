"""
AI-assisted card generation (Google Gemini).

Turns a word list into draft cards: meaning, phonetic, one example sentence
and its translation. Drafts only become Cards after the user confirms.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass

from utils.models import Card, ContentType, new_card

IMPORT_TAG = 'imported'
MAX_WORDS = 30

PROMPT = (
    "You are helping a language learner build flashcards.\n"
    "For each word or phrase below, return a JSON array. Each element must be an object with keys:\n"
    '  "front": the word exactly as given,\n'
    '  "back": a short meaning or translation,\n'
    '  "phonetic": pronunciation (IPA, pinyin or romanisation),\n'
    '  "example": one natural example sentence, with the word wrapped in <b></b>,\n'
    '  "exampleTranslation": a translation of the example.\n'
    "Return only the JSON array.\n\n"
    "Words:\n{words}"
)


class AiImportError(Exception):
    """Card generation failed (no key, service error, or unreadable reply)."""


@dataclass(frozen=True)
class CardDraft:
    front: str
    back: str
    phonetic: str = ''
    example: str = ''
    example_translation: str = ''


def build_prompt(words: list[str]) -> str:
    return PROMPT.format(words='\n'.join(f"- {w}" for w in words))


def parse_drafts(text: str) -> list[CardDraft]:
    """
    Parse the model reply. Tolerates ```json fences and skips entries without
    a front or back; raises AiImportError if there is no JSON array at all.
    """
    cleaned = re.sub(r'^```(?:json)?\s*|\s*```$', '', (text or '').strip())
    match = re.search(r'\[.*\]', cleaned, flags=re.DOTALL)
    if not match:
        raise AiImportError("AI reply contained no card list")

    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AiImportError(f"AI reply was not valid JSON: {e}") from e

    drafts: list[CardDraft] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        front = str(item.get('front') or '').strip()
        back = str(item.get('back') or '').strip()
        if not front or not back:
            logging.warning(f"Skipping incomplete AI card: {item}")
            continue
        drafts.append(CardDraft(
            front=front,
            back=back,
            phonetic=str(item.get('phonetic') or '').strip(),
            example=str(item.get('example') or '').strip(),
            example_translation=str(item.get('exampleTranslation') or item.get('example_translation') or '').strip(),
        ))
    return drafts


def draft_back(draft: CardDraft) -> str:
    if not draft.example:
        return draft.back
    back = f"{draft.back}\n\nExample: {draft.example}"
    if draft.example_translation:
        back += f"\n({draft.example_translation})"
    return back


def draft_to_card(draft: CardDraft, folder_id: str, now: int | None = None) -> Card:
    return new_card(
        folder_id=folder_id,
        front_type=ContentType.TEXT,
        front_content=draft.front,
        back_type=ContentType.TEXT,
        back_content=draft_back(draft),
        phonetic=draft.phonetic or None,
        tags=(IMPORT_TAG,),
        now=now,
    )


async def generate_cards(words: list[str], api_key: str | None, model: str) -> list[CardDraft]:
    if not api_key:
        raise AiImportError("GEMINI_API_KEY is not configured")
    if not words:
        return []

    from google import genai
    from google.genai import types

    client = genai.Client(api_key=api_key)
    prompt = build_prompt(words[:MAX_WORDS])

    try:
        response = await asyncio.to_thread(
            client.models.generate_content,
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(response_mime_type='application/json'),
        )
    except Exception as e:
        logging.error(f"Gemini request failed: {e}")
        raise AiImportError(f"AI service error: {e}") from e

    drafts = parse_drafts(response.text or '')
    logging.info(f"Generated {len(drafts)} cards from {len(words)} words")
    return drafts
