import os
import time
from typing import Optional, List, Dict

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

load_dotenv()

from recall.providers import (
    ProviderGateway,
    ProviderId,
    detect_provider,
    NotConfiguredError,
    UnsupportedProviderError,
    ProviderError,
    ProviderConnectionError,
)
from recall.semantic import StudyContentPipeline
from recall.sheets import (
    InformationBlock,
    BlockWithContext,
    RecallSheet,
    RecallFileError,
    create_recall_sheet,
    format_recall_sheet,
    parse_recall_sheet,
    utc_now_iso,
)
from recall.utils import (
    get_logger,
    set_request_context,
    log_request,
    log_error,
    TokenUsage,
    UsageTracker,
    estimate_processing_usage,
    estimate_question_usage,
)

LOG = get_logger()


class Settings(BaseSettings):
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '8000'))
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    CORS_ORIGIN: str = os.getenv('CORS_ORIGIN', '*')


settings = Settings()

app = FastAPI(title='Recall Service', version='1.0.0', description='Active recall study service backed by pluggable LLM providers')

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# running token estimates for the client; the core keeps none
usage_tracker = UsageTracker()


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
    log_request(request_id, request.method, request.url.path, response.status_code, duration, ip=request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


def _request_id(fastapi_request: Request) -> str:
    return getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()


def _error(status_code: int, error: str, details: str, request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'error': error, 'details': details, 'request_id': request_id})


def _gateway_error_response(e: Exception, request_id: str) -> JSONResponse:
    if isinstance(e, NotConfiguredError):
        return _error(409, 'Provider not configured', str(e), request_id)
    if isinstance(e, UnsupportedProviderError):
        return _error(400, 'Unsupported provider', str(e), request_id)
    if isinstance(e, ProviderConnectionError):
        return _error(503, 'LLM provider unreachable', str(e), request_id)
    if isinstance(e, ProviderError):
        return _error(502, 'LLM API error', str(e), request_id)
    return _error(500, 'Unexpected error', str(e), request_id)


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': utc_now_iso(), 'service': 'recall'}


@app.get('/ready')
async def ready():
    config = ProviderGateway.get_instance().config
    ready_ok = config.is_complete()
    return JSONResponse(status_code=200 if ready_ok else 503, content={
        'status': 'ready' if ready_ok else 'not ready',
        'provider': config.provider,
        'model': config.model,
    })


class DetectProviderRequest(BaseModel):
    api_key: str = Field(..., description='Provider API key')


class DetectProviderResponse(BaseModel):
    success: bool
    provider: ProviderId
    default_model: str
    request_id: str


class ConfigureProviderRequest(BaseModel):
    api_key: str = Field(..., description='Provider API key')
    provider: Optional[str] = Field(None, description='openai|anthropic|deepseek|google; detected from the key when omitted')
    model: Optional[str] = Field(None, description="Model id; the provider's default when omitted")


class ConfigureProviderResponse(BaseModel):
    success: bool
    provider: str
    model: str
    request_id: str


class ProcessInformationRequest(BaseModel):
    information: str = Field(..., description='Raw study material')
    input_prompt: str = Field(..., description='How to split the material into blocks')
    context_prompt: str = Field(..., description='What the recall sheet is about')


class ProcessInformationResponse(BaseModel):
    success: bool
    blocks: List[InformationBlock]
    usage: TokenUsage
    request_id: str


class GenerateQuestionRequest(BaseModel):
    main_block: InformationBlock
    context_before: List[InformationBlock] = Field(default_factory=list)
    context_after: List[InformationBlock] = Field(default_factory=list)
    output_prompt: str
    context_prompt: str


class GenerateQuestionResponse(BaseModel):
    success: bool
    question: str
    answer: str
    usage: TokenUsage
    request_id: str


class NewSheetRequest(BaseModel):
    title: Optional[str] = None
    prompts: Optional[Dict[str, str]] = Field(None, description='Optional context/input/output prompt overrides')


class ParseSheetRequest(BaseModel):
    content: str


@app.post('/provider/detect', response_model=DetectProviderResponse)
async def provider_detect(req: DetectProviderRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    preset = detect_provider(req.api_key)
    if preset is None:
        return _error(422, 'Unrecognized key format', 'Could not infer a provider from the API key', request_id)
    return DetectProviderResponse(success=True, provider=preset.provider, default_model=preset.default_model, request_id=request_id)


@app.post('/provider/configure', response_model=ConfigureProviderResponse)
async def provider_configure(req: ConfigureProviderRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    if not req.api_key.strip():
        return _error(400, 'Empty API key', 'api_key must not be empty', request_id)
    preset = detect_provider(req.api_key)
    provider = req.provider or (preset.provider.value if preset else None)
    if not provider:
        return _error(422, 'Unrecognized key format', 'Pass provider explicitly', request_id)
    model = req.model
    if not model and preset and preset.provider.value == provider:
        model = preset.default_model
    if not model:
        return _error(400, 'Missing model', 'model is required for this provider', request_id)
    ProviderGateway.get_instance().configure(provider, req.api_key.strip(), model)
    return ConfigureProviderResponse(success=True, provider=provider, model=model, request_id=request_id)


@app.post('/provider/test')
async def provider_test(fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    connected = await ProviderGateway.get_instance().test_connection()
    LOG.info('provider_test_complete', extra={'request_id': request_id, 'connected': connected})
    return {'success': True, 'connected': connected, 'request_id': request_id}


@app.post('/information/process', response_model=ProcessInformationResponse)
async def process_information_endpoint(req: ProcessInformationRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    if not req.information or not req.information.strip():
        return _error(400, 'Empty information', 'information must not be empty', request_id)

    LOG.info('information_process_start', extra={'request_id': request_id, 'text_length': len(req.information)})
    try:
        pipeline = StudyContentPipeline(ProviderGateway.get_instance())
        blocks = await pipeline.process_information(req.information.strip(), req.input_prompt, req.context_prompt, request_id=request_id)
    except Exception as e:
        log_error(e, {'request_id': request_id, 'operation': 'information_process'})
        return _gateway_error_response(e, request_id)
    usage = estimate_processing_usage(req.information, req.input_prompt, req.context_prompt, (b.content for b in blocks))
    usage_tracker.add(usage)
    return ProcessInformationResponse(success=True, blocks=blocks, usage=usage, request_id=request_id)


@app.post('/questions/generate', response_model=GenerateQuestionResponse)
async def generate_question_endpoint(req: GenerateQuestionRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    block_with_context = BlockWithContext(
        main_block=req.main_block,
        context_before=req.context_before[-2:],
        context_after=req.context_after[:2],
    )
    try:
        pipeline = StudyContentPipeline(ProviderGateway.get_instance())
        qa = await pipeline.generate_question_answer(block_with_context, req.output_prompt, req.context_prompt, request_id=request_id)
    except Exception as e:
        log_error(e, {'request_id': request_id, 'operation': 'question_generation'})
        return _gateway_error_response(e, request_id)
    usage = estimate_question_usage(block_with_context.model_dump(mode='json', by_alias=True), req.output_prompt, req.context_prompt, qa.question, qa.answer)
    usage_tracker.add(usage)
    return GenerateQuestionResponse(success=True, question=qa.question, answer=qa.answer, usage=usage, request_id=request_id)


@app.post('/sheets/new', response_model=RecallSheet)
async def sheets_new(req: NewSheetRequest):
    return create_recall_sheet(req.title, req.prompts)


@app.post('/sheets/format')
async def sheets_format(sheet: RecallSheet):
    return {'success': True, 'content': format_recall_sheet(sheet)}


@app.post('/sheets/parse', response_model=RecallSheet)
async def sheets_parse(req: ParseSheetRequest, fastapi_request: Request):
    try:
        return parse_recall_sheet(req.content)
    except RecallFileError as e:
        LOG.exception('recall_parse_failed', exc_info=True)
        return _error(422, 'Invalid .recall file', str(e), _request_id(fastapi_request))


@app.get('/usage', response_model=TokenUsage)
async def usage():
    return usage_tracker.snapshot()


if __name__ == '__main__':
    import uvicorn

    reload_enabled = settings.ENVIRONMENT == 'development'
    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=reload_enabled,
    )
