"""OpenAI-backed generative text capability.

Provides:
- ModelClient wrapping chat completions with tenacity retries on transient failures
- the exception taxonomy shared by every component that talks to the model

Custom exceptions: ModelClientError, ModelUnavailableError, ModelTransientError,
ModelTimeoutError, MalformedModelOutputError
"""
from __future__ import annotations

import os
import time
from typing import Optional, Dict, Any, List

import openai
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from studysets.utils import get_logger, get_request_context, log_llm_call

LOG = get_logger()


class ModelClientError(Exception):
    pass


class ModelUnavailableError(ModelClientError):
    """The generative call could not be completed (network, auth, quota, config)."""


class ModelTransientError(ModelUnavailableError):
    pass


class ModelTimeoutError(ModelTransientError):
    pass


class MalformedModelOutputError(ModelClientError):
    """The model answered, but not in a shape the caller can use."""


OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o')
OPENAI_LIGHT_MODEL = os.getenv('OPENAI_LIGHT_MODEL', 'gpt-3.5-turbo')
OPENAI_TIMEOUT = float(os.getenv('OPENAI_TIMEOUT', '60'))
OPENAI_RETRY_ATTEMPTS = int(os.getenv('OPENAI_RETRY_ATTEMPTS', '3'))
OPENAI_RETRY_MULTIPLIER = int(os.getenv('OPENAI_RETRY_MULTIPLIER', '2'))
OPENAI_RETRY_MAX_WAIT = int(os.getenv('OPENAI_RETRY_MAX_WAIT', '10'))
OPENAI_ENABLE_COST_TRACKING = os.getenv('OPENAI_ENABLE_COST_TRACKING', 'true').lower() in ('1', 'true', 'yes')

JSON_OBJECT = {'type': 'json_object'}

_TRANSIENT_ERRORS = (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)


class ModelClient:
    """Thin wrapper around the OpenAI chat completions endpoint.

    One instance is created by the composition root and injected into the
    generation, naming and classification components.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: int = OPENAI_RETRY_ATTEMPTS,
        retry_multiplier: int = OPENAI_RETRY_MULTIPLIER,
        retry_max_wait: int = OPENAI_RETRY_MAX_WAIT,
        client: Any = None,
    ):
        self.model = model or OPENAI_MODEL
        self.timeout = timeout or OPENAI_TIMEOUT
        if client is None:
            key = api_key or os.getenv('OPENAI_API_KEY')
            if key:
                # retries are owned by tenacity below
                client = openai.OpenAI(api_key=key, timeout=self.timeout, max_retries=0)
            else:
                LOG.warning('openai_key_missing')
        self._client = client
        self._retry_kwargs = dict(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=retry_multiplier, max=retry_max_wait),
        )
        LOG.info('ModelClient initialized', extra={'model': self.model})

    def _estimate_cost(self, prompt_tokens: int, completion_tokens: int, model: str) -> float:
        # prices per 1000 tokens (approx)
        if 'gpt-4o' in model:
            return (prompt_tokens / 1000.0) * 0.005 + (completion_tokens / 1000.0) * 0.015
        if 'gpt-4' in model:
            return (prompt_tokens / 1000.0) * 0.03 + (completion_tokens / 1000.0) * 0.06
        return (prompt_tokens / 1000.0) * 0.0015 + (completion_tokens / 1000.0) * 0.002

    def _call_openai(self, messages: List[Dict[str, str]], model: str, temperature: float, max_tokens: int, response_format: Optional[Dict[str, Any]], purpose: Optional[str]):
        if self._client is None:
            raise ModelUnavailableError('OPENAI_API_KEY not set')
        kwargs = dict(model=model, messages=messages, temperature=temperature, max_tokens=max_tokens)
        if response_format:
            kwargs['response_format'] = response_format
        start = time.time()
        try:
            resp = self._client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            LOG.warning('openai_timeout', extra={'model': model, 'purpose': purpose})
            raise ModelTimeoutError(str(e)) from e
        except _TRANSIENT_ERRORS as e:
            LOG.warning('openai_transient_error', extra={'model': model, 'purpose': purpose, 'error': str(e)})
            raise ModelTransientError(str(e)) from e
        except openai.OpenAIError as e:
            LOG.exception('openai_api_error', exc_info=True)
            raise ModelUnavailableError(str(e)) from e
        duration_ms = int((time.time() - start) * 1000)
        usage = getattr(resp, 'usage', None)
        prompt_tokens = getattr(usage, 'prompt_tokens', 0) or 0
        completion_tokens = getattr(usage, 'completion_tokens', 0) or 0
        cost = self._estimate_cost(prompt_tokens, completion_tokens, model) if OPENAI_ENABLE_COST_TRACKING else None
        log_llm_call(get_request_context().get('request_id'), model, prompt_tokens, completion_tokens, duration_ms, cost=cost, purpose=purpose)
        return resp

    def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: Optional[Dict[str, Any]] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> str:
        """Run one chat completion and return the first choice's text.

        Transient failures are retried; anything still failing surfaces as
        ModelUnavailableError. An empty completion is returned as ''.
        """
        messages = [
            {'role': 'system', 'content': system_prompt},
            {'role': 'user', 'content': user_prompt},
        ]
        model = model or self.model
        retryer = Retrying(retry=retry_if_exception_type(ModelTransientError), reraise=True, **self._retry_kwargs)
        for attempt in retryer:
            with attempt:
                resp = self._call_openai(messages, model, temperature, max_tokens, response_format, purpose)
        choices = getattr(resp, 'choices', None) or []
        if not choices:
            return ''
        message = getattr(choices[0], 'message', None)
        return (getattr(message, 'content', None) or '')

    def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            self._client.models.list()
            return True
        except openai.OpenAIError:
            return False
