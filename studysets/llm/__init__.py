"""Generative text model capability."""
from .client import (
	ModelClient,
	ModelClientError,
	ModelUnavailableError,
	ModelTransientError,
	ModelTimeoutError,
	MalformedModelOutputError,
	JSON_OBJECT,
	OPENAI_MODEL,
	OPENAI_LIGHT_MODEL,
)

__all__ = [
	'ModelClient',
	'ModelClientError',
	'ModelUnavailableError',
	'ModelTransientError',
	'ModelTimeoutError',
	'MalformedModelOutputError',
	'JSON_OBJECT',
	'OPENAI_MODEL',
	'OPENAI_LIGHT_MODEL',
]
