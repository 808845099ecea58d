"""Utility subpackage for the study engine"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	log_generation,
	log_quota_event,
	log_fallback,
	log_review,
	set_request_context,
	get_request_context,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'log_generation',
	'log_quota_event',
	'log_fallback',
	'log_review',
	'set_request_context',
	'get_request_context',
]
