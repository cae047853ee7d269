"""Utility subpackage: logging and usage estimation"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	log_information_processing,
	log_question_generation,
	set_request_context,
	get_request_context,
)
from .usage import TokenUsage, UsageTracker, estimate_tokens, estimate_processing_usage, estimate_question_usage

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'log_information_processing',
	'log_question_generation',
	'set_request_context',
	'get_request_context',
	'TokenUsage',
	'UsageTracker',
	'estimate_tokens',
	'estimate_processing_usage',
	'estimate_question_usage',
]
