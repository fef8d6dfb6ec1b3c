"""Utility subpackage for the study set service"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	log_generation,
	log_classification,
	log_study_set_saved,
	set_request_context,
	get_request_context,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'log_generation',
	'log_classification',
	'log_study_set_saved',
	'set_request_context',
	'get_request_context',
]
