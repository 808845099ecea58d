import os
import time
import signal
import asyncio
from datetime import datetime
from typing import Optional, List

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from study_engine.config import Settings, get_settings
from study_engine.errors import GatewayValidationError, SchedulerValidationError, StorageError
from study_engine.models import (
    GenerationKind,
    GenerationOptions,
    StudyItem,
    SummaryLength,
    SummaryStyle,
    MAX_GENERATION_COUNT,
)
from study_engine.providers import ProviderGateway
from study_engine.quota import UsageInfo
from study_engine.scheduling import SpacedRepetitionScheduler, ReviewResult
from study_engine.storage import KeyValueStore, StudyItemRepository, build_store
from study_engine.utils import get_logger, set_request_context

LOG = get_logger()

MAX_TEXT_LENGTH = int(os.getenv('MAX_TEXT_LENGTH', '50000'))
NO_CONTENT_MESSAGE = 'No content could be generated from this text'

settings = get_settings()

app = FastAPI(title='Study Engine Service', version='1.0.0', description='Study content generation and review scheduling')

# CORS config
origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class Services:
    """Process-wide collaborators sharing one store: gateway, item repository and scheduler."""

    def __init__(self, settings: Settings, store: Optional[KeyValueStore] = None):
        store = store or build_store(settings)
        self.gateway = ProviderGateway.from_settings(settings, store=store)
        self.repository = StudyItemRepository(store)
        self.scheduler = SpacedRepetitionScheduler()


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = Services(settings)
    return _services


def set_services(services: Optional[Services]) -> None:
    global _services
    _services = services


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    LOG.info('http_request_end', extra={'method': request.method, 'path': request.url.path, 'status_code': response.status_code, 'duration_ms': duration, 'request_id': request_id})
    response.headers['X-Request-ID'] = request_id
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


def _error(status_code: int, error: str, request_id: str, details: str = None) -> JSONResponse:
    body = {'success': False, 'error': error, 'request_id': request_id}
    if details:
        body['details'] = details
    return JSONResponse(status_code=status_code, content=body)


@app.get('/health')
async def health():
    state = get_services().gateway.state
    return {'status': 'ok', 'timestamp': datetime.utcnow().isoformat() + 'Z', 'service': 'study-engine', 'mode': state.mode.value}


class GenerateRequest(BaseModel):
    kind: GenerationKind = GenerationKind.FLASHCARDS
    text: str = Field(..., description='Plain source text', max_length=MAX_TEXT_LENGTH)
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    save: bool = Field(True, description='Persist generated items')


class GenerateResponse(BaseModel):
    success: bool
    items: List[StudyItem]
    metadata: dict
    request_id: str


class SummarizeRequest(BaseModel):
    text: str = Field(..., max_length=MAX_TEXT_LENGTH)
    length: SummaryLength = SummaryLength.MEDIUM
    style: SummaryStyle = SummaryStyle.PARAGRAPH


class SummarizeResponse(BaseModel):
    success: bool
    summary: str
    request_id: str


class KeywordsRequest(BaseModel):
    text: str = Field(..., max_length=MAX_TEXT_LENGTH)
    count: int = Field(10, gt=0, le=MAX_GENERATION_COUNT)


class KeywordsResponse(BaseModel):
    success: bool
    keywords: List[str]
    request_id: str


class ReviewRequest(BaseModel):
    item_id: str
    quality: int


class ReviewResponse(BaseModel):
    success: bool
    item: StudyItem
    review: ReviewResult
    request_id: str


class UsageResponse(BaseModel):
    success: bool
    usage: UsageInfo
    request_id: str


class ModeRequest(BaseModel):
    mode: str


class DueItemsResponse(BaseModel):
    success: bool
    items: List[StudyItem]
    count: int
    request_id: str


@app.post('/generate', response_model=GenerateResponse)
async def generate_endpoint(req: GenerateRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    services = get_services()
    LOG.info('generation_start', extra={'request_id': request_id, 'kind': req.kind.value, 'count': req.options.count})
    start = time.time()
    try:
        items = await asyncio.to_thread(services.gateway.generate, req.kind, req.text, req.options, request_id)
    except GatewayValidationError as e:
        return _error(400, 'Invalid generation request', request_id, str(e))
    if not items:
        return _error(422, NO_CONTENT_MESSAGE, request_id)
    if req.save:
        try:
            await asyncio.to_thread(services.repository.save_many, items)
        except StorageError as e:
            LOG.exception('generation_save_failed', exc_info=True)
            return _error(500, 'Failed to save generated items', request_id, str(e))
    duration_ms = int((time.time() - start) * 1000)
    metadata = {'processing_time_ms': duration_ms, 'mode': services.gateway.state.mode.value, 'count': len(items), 'saved': req.save}
    return GenerateResponse(success=True, items=items, metadata=metadata, request_id=request_id)


@app.post('/summarize', response_model=SummarizeResponse)
async def summarize_endpoint(req: SummarizeRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    options = GenerationOptions(summary_length=req.length, summary_style=req.style)
    summary = await asyncio.to_thread(get_services().gateway.summarize, req.text, options, request_id)
    if not summary:
        return _error(422, NO_CONTENT_MESSAGE, request_id)
    return SummarizeResponse(success=True, summary=summary, request_id=request_id)


@app.post('/keywords', response_model=KeywordsResponse)
async def keywords_endpoint(req: KeywordsRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    keywords = await asyncio.to_thread(get_services().gateway.extract_keywords, req.text, req.count, request_id)
    if not keywords:
        return _error(422, NO_CONTENT_MESSAGE, request_id)
    return KeywordsResponse(success=True, keywords=keywords, request_id=request_id)


@app.post('/review', response_model=ReviewResponse)
async def review_endpoint(req: ReviewRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    services = get_services()
    item = services.repository.get(req.item_id)
    if item is None:
        return _error(404, 'Item not found', request_id, req.item_id)
    try:
        updated = services.scheduler.apply_review(item, req.quality)
    except SchedulerValidationError as e:
        return _error(400, 'Invalid review quality', request_id, str(e))
    result = ReviewResult(
        interval=updated.interval,
        repetitions=updated.repetitions,
        easiness_factor=updated.easiness_factor,
        next_review=updated.next_review,
    )
    services.repository.save_many([updated])
    return ReviewResponse(success=True, item=updated, review=result, request_id=request_id)


@app.get('/usage', response_model=UsageResponse)
async def usage_endpoint(fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    return UsageResponse(success=True, usage=get_services().gateway.usage_info(), request_id=request_id)


@app.post('/mode')
async def mode_endpoint(req: ModeRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        state = get_services().gateway.switch_mode(req.mode)
    except GatewayValidationError as e:
        return _error(400, 'Invalid mode', request_id, str(e))
    return {'success': True, 'mode': state.mode.value, 'provider': state.provider.value, 'request_id': request_id}


@app.get('/items/due', response_model=DueItemsResponse)
async def due_items_endpoint(fastapi_request: Request, include_new: bool = False):
    request_id = _request_id(fastapi_request)
    services = get_services()
    scheduler = services.scheduler
    if include_new:
        candidates = []
        for kind in ('flashcard', 'quiz'):
            candidates.extend(services.repository.get_all(kind))
        due = scheduler.due_items(candidates, include_new=True)
    else:
        due = services.repository.get_due()
    items = scheduler.sort_for_study(due)
    return DueItemsResponse(success=True, items=items, count=len(items), request_id=request_id)


@app.delete('/documents/{document_id}/items')
async def delete_document_items(document_id: str, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    deleted = get_services().repository.delete_by_document(document_id)
    return {'success': True, 'deleted': deleted, 'document_id': document_id, 'request_id': request_id}


@app.on_event('startup')
async def on_startup():
    LOG.info('Study engine service starting', extra={'env': settings.ENVIRONMENT})
    if not settings.OPENAI_API_KEY:
        LOG.warning('OPENAI_API_KEY not set; free/custom modes will fall back to mock')
    try:
        get_services()
        LOG.info('Services ready')
    except StorageError:
        LOG.exception('services_init_failed', exc_info=True)


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('Study engine service shutting down')


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
    # keep a single worker: the service state is owned by one process
    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == 'development',
    )
