"""Recover JSON values from free-form model output.

Models wrap JSON in code fences or surround it with commentary. Recovery
strips fences, tries a strict parse, then retries on the widest bracketed
substring of the expected shape. `ExtractionError` signals that nothing
usable was found; callers decide the fallback.
"""
import re
import json
from typing import Any, Dict, List, Optional

_JSON_FENCE = re.compile(r'```json\s*')
_ANY_FENCE = re.compile(r'```\s*')
_ARRAY_SPAN = re.compile(r'\[[\s\S]*\]')
_OBJECT_SPAN = re.compile(r'\{[\s\S]*\}')


class ExtractionError(Exception):
    pass


def clean_response(text: str) -> str:
    cleaned = (text or '').strip()
    if '```json' in cleaned:
        cleaned = _JSON_FENCE.sub('', cleaned).replace('```', '')
    if '```' in cleaned:
        cleaned = _ANY_FENCE.sub('', cleaned)
    return cleaned.strip()


def _recover(text: str, span: re.Pattern) -> Any:
    cleaned = clean_response(text)
    try:
        return json.loads(cleaned)
    except ValueError:
        pass
    match = span.search(cleaned)
    if not match:
        raise ExtractionError('No JSON value found in response')
    try:
        return json.loads(match.group(0))
    except ValueError as e:
        raise ExtractionError(f'Invalid JSON in response: {e}') from e


def extract_json_array(text: str) -> List[Any]:
    value = _recover(text, _ARRAY_SPAN)
    if not isinstance(value, list):
        raise ExtractionError('Response is not a JSON array')
    return value


def extract_json_object(text: str, required_fields: Optional[List[str]] = None) -> Dict[str, Any]:
    """Recover a JSON object, optionally requiring non-blank string fields."""
    value = _recover(text, _OBJECT_SPAN)
    if not isinstance(value, dict):
        raise ExtractionError('Response is not a JSON object')
    for field in required_fields or ():
        v = value.get(field)
        if not isinstance(v, str) or not v.strip():
            raise ExtractionError(f'Response missing {field} field')
    return value


def extract_question_answer(text: str) -> Dict[str, str]:
    value = extract_json_object(text, required_fields=['question', 'answer'])
    return {'question': value['question'], 'answer': value['answer']}
