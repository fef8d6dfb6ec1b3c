import os
import time
import signal
import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from studysets.config import get_settings
from studysets.generation import Difficulty, QuestionRecord
from studysets.llm import ModelClient, ModelClientError, ModelUnavailableError
from studysets.persistence import PostgresStore, StoreError, FatalInputError, StudySetPersistenceError
from studysets.service import StudySetService
from studysets.utils import get_logger, set_request_context, log_request, log_error

LOG = get_logger()

settings = get_settings()

app = FastAPI(title='Study Sets Service', version='1.0.0', description='Generates, classifies and saves multiple-choice study sets')

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


class StudySetRequest(BaseModel):
    subject: str = Field(..., description='Subject to generate study set for')
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description='Study set difficulty level')

    @field_validator('subject')
    @classmethod
    def subject_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('subject must not be blank')
        return v


class GenerateStudySetResponse(BaseModel):
    success: bool
    text: str
    questions: List[QuestionRecord]
    request_id: str


class SaveStudySetResponse(BaseModel):
    success: bool
    text: str
    study_set_id: str
    study_set_name: str
    question_count: int
    questions: List[QuestionRecord]
    request_id: str


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id, request.headers.get('x-agent-id'))
    start = time.time()
    try:
        response: Response = await call_next(request)
    except Exception as e:
        log_error(e, {'request_id': request_id, 'method': request.method, 'path': request.url.path})
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, ip=request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


def _build_service() -> StudySetService:
    model_client = ModelClient(api_key=settings.OPENAI_API_KEY or None)
    store = PostgresStore.from_settings(settings)
    return StudySetService(model_client, store, ai_generated=settings.STUDY_SET_PROVENANCE)


def get_service() -> StudySetService:
    service = getattr(app.state, 'service', None)
    if service is None:
        service = _build_service()
        app.state.service = service
    return service


def _error(status_code: int, error: str, details: str, request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'error': error, 'details': details, 'request_id': request_id})


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.utcnow().isoformat() + 'Z', 'service': 'studysets'}


@app.get('/ready')
async def ready():
    services = {}
    try:
        service = get_service()
    except (ModelClientError, StoreError) as e:
        return JSONResponse(status_code=503, content={'status': 'not ready', 'services': {'startup': f'error: {e}'}})
    db_ok = service.store is not None and await asyncio.to_thread(service.store.ping)
    services['database'] = 'ok' if db_ok else 'error: database unreachable'
    if settings.OPENAI_REQUIRED_FOR_READY:
        openai_ok = await asyncio.to_thread(service.completer.model_client.ping)
        services['openai'] = 'ok' if openai_ok else 'error: openai unreachable'
    ready_ok = not any(v.startswith('error') for v in services.values())
    return JSONResponse(status_code=200 if ready_ok else 503, content={'status': 'ready' if ready_ok else 'not ready', 'services': services})


@app.post('/study-sets/generate', response_model=GenerateStudySetResponse)
async def generate_study_set(req: StudySetRequest, fastapi_request: Request):
    request_id = getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()
    difficulty = req.difficulty.value
    LOG.info('study_set_generation_start', extra={'request_id': request_id, 'subject': req.subject, 'difficulty': difficulty})
    try:
        generated = await asyncio.to_thread(get_service().generate, req.subject, difficulty)
    except (ModelClientError, StoreError) as e:
        LOG.exception('study_set_service_unavailable', exc_info=True)
        return _error(503, 'Service unavailable', str(e), request_id)
    return GenerateStudySetResponse(success=True, text=generated.text, questions=generated.questions, request_id=request_id)


@app.post('/study-sets/save', response_model=SaveStudySetResponse)
async def save_study_set(req: StudySetRequest, fastapi_request: Request):
    request_id = getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()
    difficulty = req.difficulty.value
    LOG.info('study_set_save_start', extra={'request_id': request_id, 'subject': req.subject, 'difficulty': difficulty})
    try:
        saved = await asyncio.to_thread(get_service().generate_and_save, req.subject, difficulty)
    except FatalInputError as e:
        LOG.exception('study_set_save_invalid_input', exc_info=True)
        return _error(400, 'No valid questions to save', str(e), request_id)
    except StudySetPersistenceError as e:
        LOG.exception('study_set_save_failed', exc_info=True)
        return _error(502, 'Database error', str(e), request_id)
    except ModelUnavailableError as e:
        LOG.exception('study_set_save_llm_unavailable', exc_info=True)
        return _error(502, 'LLM API error', str(e), request_id)
    except (ModelClientError, StoreError) as e:
        LOG.exception('study_set_service_unavailable', exc_info=True)
        return _error(503, 'Service unavailable', str(e), request_id)
    return SaveStudySetResponse(
        success=True,
        text=saved.text,
        study_set_id=saved.study_set_id,
        study_set_name=saved.study_set_name,
        question_count=saved.question_count,
        questions=saved.questions,
        request_id=request_id,
    )


@app.on_event('startup')
async def on_startup():
    LOG.info('Study sets service starting', extra={'env': settings.ENVIRONMENT})
    if not settings.OPENAI_API_KEY and not os.getenv('OPENAI_API_KEY'):
        LOG.warning('OPENAI_API_KEY not set; generation will fall back to the sample bank')
    try:
        get_service()
        LOG.info('StudySetService ready')
    except (ModelClientError, StoreError) as e:
        LOG.warning('StudySetService warmup failed', extra={'error': str(e)})


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('Study sets service shutting down')
    service = getattr(app.state, 'service', None)
    if service is not None and service.store is not None:
        service.store.close()


def _install_signal_handlers(loop: Optional[asyncio.AbstractEventLoop] = None):
    if loop is None:
        loop = asyncio.get_event_loop()

    def _handler(signum, frame):
        LOG.info('Received shutdown signal', extra={'signal': signum})
        loop.call_soon_threadsafe(loop.stop)

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)


if __name__ == '__main__':
    import uvicorn

    _install_signal_handlers()
    workers = int(os.getenv('WORKERS', '1'))
    if settings.ENVIRONMENT == 'development':
        workers = 1
    reload_enabled = (settings.ENVIRONMENT == 'development') and (workers == 1)

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=reload_enabled,
        workers=workers,
    )
