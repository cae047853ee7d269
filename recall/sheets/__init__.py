"""
Recall sheets: information blocks, question/answer pairs and the .recall
text format used to persist them.
"""
from .models import BlockId, BlockMetadata, InformationBlock, BlockWithContext, QuestionAnswer, RecallSheet, new_block_id, utc_now_iso
from .recall_file import (
	RecallFileError,
	DEFAULT_PROMPTS,
	SECTION_SEPARATOR,
	RECALL_EXTENSION,
	create_recall_sheet,
	validate_recall_data,
	format_recall_sheet,
	parse_recall_sheet,
	load_recall_file,
	save_recall_file,
)

__all__ = [
	'BlockId', 'BlockMetadata', 'InformationBlock', 'BlockWithContext', 'QuestionAnswer', 'RecallSheet', 'new_block_id', 'utc_now_iso',
	'RecallFileError', 'DEFAULT_PROMPTS', 'SECTION_SEPARATOR', 'RECALL_EXTENSION',
	'create_recall_sheet', 'validate_recall_data', 'format_recall_sheet', 'parse_recall_sheet', 'load_recall_file', 'save_recall_file',
]
