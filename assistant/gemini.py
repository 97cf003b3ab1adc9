import json
import logging
import re

import google.generativeai as genai
from django.conf import settings

logger = logging.getLogger(__name__)

CLINICAL_INSTRUCTION = (
    "You are SehatSahayak Pro, a clinical decision support assistant for licensed doctors. "
    "Answer concisely in Markdown. Cover drug interactions, differential diagnoses, "
    "treatment protocols and report summaries when asked. Flag red-flag findings and "
    "state uncertainty plainly. You support the doctor's judgement and never replace it."
)

EXTRACTION_PROMPT = (
    "Read this handwritten or printed medical prescription and list every medicine on it. "
    "Reply with a JSON array only, no prose. Each element must be an object with the keys "
    '"name", "dosage", "frequency", "duration" and "quantity" (an integer number of units). '
    "Use an empty string for anything you cannot read."
)

FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
LEADING_INT_RE = re.compile(r"\d+")


class AssistantUnavailable(Exception):
    """
    The model could not be reached or refused to answer
    """


class ExtractionError(Exception):
    """
    The model's reply could not be read as a medicine list
    """


def get_model(system_instruction=None):
    genai.configure(api_key=settings.GEMINI_API_KEY)
    return genai.GenerativeModel(settings.GEMINI_MODEL, system_instruction=system_instruction)


def attachment_part(upload):
    """
    Inline blob for an uploaded file
    """
    upload.seek(0)
    return {'mime_type': upload.content_type, 'data': upload.read()}


def generate_reply(history, message, attachment=None):
    """
    Ask the clinical assistant for the next reply.

    history is a sequence of ChatMessage, oldest first, not including
    the message being sent.
    """
    contents = [
        {'role': 'model' if turn.role == 'ai' else 'user', 'parts': [turn.content or '(attachment)']}
        for turn in history
    ]
    parts = [message or 'Review the attached document.']
    if attachment is not None:
        parts.append(attachment_part(attachment))
    contents.append({'role': 'user', 'parts': parts})

    try:
        response = get_model(CLINICAL_INSTRUCTION).generate_content(contents)
        return response.text.strip()
    except Exception as e:
        logger.warning("Clinical assistant request failed: %s", e)
        raise AssistantUnavailable(str(e)) from e


def coerce_quantity(value):
    """
    Positive integer quantity; anything unreadable counts as one unit
    """
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        quantity = int(value)
    else:
        match = LEADING_INT_RE.search(str(value or ''))
        quantity = int(match.group()) if match else 1
    return quantity if quantity > 0 else 1


def parse_medicine_list(text):
    """
    Turn the model's reply into a list of
    {name, dosage, frequency, duration, quantity} dicts.
    Raises ExtractionError when the reply is not a JSON array of objects.
    """
    cleaned = FENCE_RE.sub('', (text or '').strip())
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise ExtractionError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ExtractionError("Reply is not a list of medicines.")

    medicines = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ExtractionError("Medicine entries must be objects.")
        medicines.append({
            'name': str(entry.get('name') or '').strip(),
            'dosage': str(entry.get('dosage') or '').strip(),
            'frequency': str(entry.get('frequency') or '').strip(),
            'duration': str(entry.get('duration') or '').strip(),
            'quantity': coerce_quantity(entry.get('quantity')),
        })
    return medicines


def extract_medicines(upload):
    """
    Read a prescription image or PDF into medicine line items
    """
    try:
        response = get_model().generate_content([EXTRACTION_PROMPT, attachment_part(upload)])
        text = response.text
    except Exception as e:
        logger.warning("Prescription extraction failed: %s", e)
        raise ExtractionError(str(e)) from e

    return parse_medicine_list(text)
