"""
Category classification: exact lookup, model-backed subject inference,
and category/subject creation.
"""
from .inference import SubjectInferrer, clean_subject
from .resolver import ClassificationResolver

__all__ = [
	'SubjectInferrer',
	'clean_subject',
	'ClassificationResolver',
]
