"""Reading and writing `.recall` files.

Layout::

    <title>
    <dateLastEdited>
    =======
    <contextPrompt>
    =======
    <inputPrompt>
    =======
    <outputPrompt>
    =======
    <information as a JSON array, 2-space indent>

The first two lines are always taken as title and date, before any
separator scanning. A file missing them shifts its content into those
fields; that matches the web app and is kept as is.
"""
import os
import json
import pathlib
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from recall.utils import get_logger
from .models import InformationBlock, RecallSheet, DEFAULT_TITLE, utc_now_iso

LOG = get_logger()

SECTION_SEPARATOR = '======='
RECALL_EXTENSION = '.recall'

# Section order after the first separator
_SECTIONS = ('context', 'input', 'output', 'json')

DEFAULT_PROMPTS = {
    'context': (
        'This recall sheet contains information for practicing active recall. Active recall is the process of '
        'actively retrieving information from memory, rather than passively recognizing it. This strengthens neural '
        'pathways and improves long-term retention. The information in this sheet should be used to generate '
        'questions that require genuine thought and synthesis, not mere recognition.'
    ),
    'input': (
        'New information should be parsed into discrete, atomic ideas. Each piece of information should be clear, '
        'concise, and self-contained, typically no more than one paragraph. Information should be organized so that '
        'related concepts are grouped together. Focus on key concepts, relationships, and understanding rather than '
        'rote memorization.'
    ),
    'output': (
        'Generate questions that promote active recall rather than recognition. Instead of asking for definitions or '
        'simple facts, create questions that require the learner to explain, apply, synthesize, or analyze the '
        'information. Questions should encourage deep understanding and the ability to connect ideas. For example, '
        "instead of 'What is X?', ask 'How would you explain X to someone unfamiliar with the topic?' or 'What would "
        "happen if X were different?'"
    ),
}


class RecallFileError(Exception):
    pass


def create_recall_sheet(title: Optional[str] = None, prompts: Optional[Dict[str, str]] = None) -> RecallSheet:
    prompts = prompts or {}
    return RecallSheet(
        title=title or DEFAULT_TITLE,
        date_last_edited=utc_now_iso(),
        context_prompt=prompts.get('context') or DEFAULT_PROMPTS['context'],
        input_prompt=prompts.get('input') or DEFAULT_PROMPTS['input'],
        output_prompt=prompts.get('output') or DEFAULT_PROMPTS['output'],
    )


def validate_recall_data(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get('title'), str)
        and isinstance(data.get('contextPrompt'), str)
        and isinstance(data.get('inputPrompt'), str)
        and isinstance(data.get('outputPrompt'), str)
        and isinstance(data.get('information'), list)
    )


def _dump_information(blocks: List[InformationBlock]) -> str:
    payload = [b.model_dump(mode='json', by_alias=True, exclude_none=True) for b in blocks]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def format_recall_sheet(sheet: RecallSheet) -> str:
    parts = [
        sheet.title,
        sheet.date_last_edited or utc_now_iso(),
        SECTION_SEPARATOR,
        sheet.context_prompt,
        SECTION_SEPARATOR,
        sheet.input_prompt,
        SECTION_SEPARATOR,
        sheet.output_prompt,
        SECTION_SEPARATOR,
        _dump_information(sheet.information),
    ]
    return '\n'.join(parts)


def _parse_information(content: str) -> List[InformationBlock]:
    try:
        raw = json.loads(content)
    except ValueError:
        LOG.warning('recall_information_json_invalid')
        return []
    if not isinstance(raw, list):
        LOG.warning('recall_information_not_a_list', extra={'type': type(raw).__name__})
        return []
    try:
        return [InformationBlock.model_validate(item) for item in raw]
    except ValidationError as e:
        raise RecallFileError(f'Invalid information block in .recall file: {e}') from e


def parse_recall_sheet(content: str) -> RecallSheet:
    sections: Dict[str, str] = {}
    title = ''
    date_last_edited = ''
    current = None
    collected: List[str] = []

    for i, raw_line in enumerate(content.split('\n')):
        line = raw_line.strip()
        if i == 0:
            title = line
            continue
        if i == 1:
            date_last_edited = line
            continue
        if line == SECTION_SEPARATOR:
            if current is None:
                current = _SECTIONS[0]
            else:
                sections[current] = '\n'.join(collected).strip()
                collected = []
                # json is the last section; later separators stay in it
                current = _SECTIONS[min(_SECTIONS.index(current) + 1, len(_SECTIONS) - 1)]
            continue
        if current is not None:
            collected.append(raw_line)

    if collected:
        sections[current] = '\n'.join(collected).strip()

    information = _parse_information(sections['json']) if 'json' in sections else []
    return RecallSheet(
        title=title,
        date_last_edited=date_last_edited,
        context_prompt=sections.get('context', ''),
        input_prompt=sections.get('input', ''),
        output_prompt=sections.get('output', ''),
        information=information,
    )


def load_recall_file(path) -> RecallSheet:
    try:
        text = pathlib.Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        LOG.exception('recall_file_read_failed', exc_info=True)
        raise RecallFileError(f'Could not read .recall file: {path}') from e
    sheet = parse_recall_sheet(text)
    LOG.info('recall_file_loaded', extra={'file': str(path), 'block_count': len(sheet.information)})
    return sheet


def save_recall_file(sheet: RecallSheet, directory, filename: str) -> pathlib.Path:
    if not filename.endswith(RECALL_EXTENSION):
        filename = f'{filename}{RECALL_EXTENSION}'
    target = pathlib.Path(directory) / os.path.basename(filename)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(format_recall_sheet(sheet), encoding='utf-8')
    LOG.info('recall_file_saved', extra={'file': str(target), 'block_count': len(sheet.information)})
    return target
