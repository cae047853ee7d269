"""
Semantic processing: recovering JSON from model replies and the study content
pipeline built on top of the provider gateway.
"""
from .extractor import ExtractionError, clean_response, extract_json_array, extract_json_object, extract_question_answer
from .pipeline import StudyContentPipeline, fallback_question_answer, FALLBACK_QUESTION_PREFIX

__all__ = [
	'ExtractionError', 'clean_response', 'extract_json_array', 'extract_json_object', 'extract_question_answer',
	'StudyContentPipeline', 'fallback_question_answer', 'FALLBACK_QUESTION_PREFIX',
]
