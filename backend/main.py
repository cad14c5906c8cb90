"""Main entry point for the Carl assistant API."""
import asyncio
import logging
from typing import Dict, Set

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS, LOG_LEVEL, PORT, TOR_PROXY_URL
from logger import setup_logging
from models.api import SearchRequest, SearchResponse, SessionResponse, TorConfigRequest
from services.assistant_orchestrator import AssistantOrchestrator
from services.crisis_classifier import CrisisClassifier
from services.errors import (
    AssistantError,
    ChannelUnavailableError,
    DecodeError,
    InvalidEndpointError,
    UpstreamHTTPError,
    UpstreamUnavailableError,
)
from services.intent_parser import IntentParser
from services.llm_client import LLMClient
from services.output_evaluator import OutputEvaluator
from services.privacy_resolver import PrivacyResolver
from services.quick_answers import QuickAnswerMatcher
from services.response_composer import ResponseComposer
from services.search_client import ProgramSearchClient

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Carl Assistant",
    description="Tiered benefits assistant for the Bay Navigator directory",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    InvalidEndpointError.code: 500,
    ChannelUnavailableError.code: 409,
    UpstreamHTTPError.code: 502,
    DecodeError.code: 502,
    UpstreamUnavailableError.code: 504,
}

# Shared services (initialized on startup)
quick_answers: QuickAnswerMatcher = None
crisis_classifier: CrisisClassifier = None
privacy_resolver: PrivacyResolver = None
intent_parser: IntentParser = None
search_client: ProgramSearchClient = None
response_composer: ResponseComposer = None
output_evaluator: OutputEvaluator = None

# One orchestrator per conversation session
sessions: Dict[str, AssistantOrchestrator] = {}
_background_tasks: Set[asyncio.Task] = set()


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global quick_answers, crisis_classifier, privacy_resolver, intent_parser
    global search_client, response_composer, output_evaluator

    setup_logging(LOG_LEVEL)
    logger.info("Initializing Carl assistant services...")

    try:
        quick_answers = QuickAnswerMatcher()
        crisis_classifier = CrisisClassifier()
        privacy_resolver = PrivacyResolver()

        llm_client = LLMClient()
        intent_parser = IntentParser(llm_client)
        response_composer = ResponseComposer(llm_client)

        search_client = ProgramSearchClient()
        output_evaluator = OutputEvaluator()

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Close sessions and shared channels."""
    for orchestrator in list(sessions.values()):
        await orchestrator.close()
    sessions.clear()
    if privacy_resolver is not None:
        await privacy_resolver.aclose()


def _error_response(error: AssistantError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(error.code, 500),
        content={
            "error": {
                "code": error.error.code,
                "message": error.error.message,
                "details": error.error.details,
            }
        },
    )


def _get_session(session_id: str) -> AssistantOrchestrator:
    orchestrator = sessions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return orchestrator


def _session_response(orchestrator: AssistantOrchestrator) -> SessionResponse:
    return SessionResponse(
        session_id=orchestrator.session_id,
        warm_up_done=orchestrator.state.warm_up_done,
        tor_ready=orchestrator.is_tor_session_ready,
    )


def _run_in_background(coro) -> None:
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Carl Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "carl-assistant",
        "version": "1.0.0",
        "sessions": len(sessions),
    }


@app.post("/sessions", response_model=SessionResponse)
async def create_session() -> SessionResponse:
    """Start a conversation session and warm up the composition backend in the background."""
    orchestrator = AssistantOrchestrator(
        quick_answers=quick_answers,
        privacy_resolver=privacy_resolver,
        intent_parser=intent_parser,
        search_client=search_client,
        composer=response_composer,
        crisis_classifier=crisis_classifier,
        evaluator=output_evaluator,
    )
    sessions[orchestrator.session_id] = orchestrator
    _run_in_background(orchestrator.warmup())
    logger.info("Session created", extra={"session_id": orchestrator.session_id})
    return _session_response(orchestrator)


@app.delete("/sessions/{session_id}")
async def end_session(session_id: str):
    """End a session and release its channels."""
    orchestrator = _get_session(session_id)
    del sessions[session_id]
    await orchestrator.close()
    return {"status": "closed", "session_id": session_id}


@app.post("/sessions/{session_id}/search", response_model=SearchResponse)
async def search_endpoint(session_id: str, request: SearchRequest):
    """
    Main search endpoint.

    Runs the tiered pipeline: quick answer, crisis check, then intent parse,
    program search and composition.

    Args:
        session_id: Session created by POST /sessions
        request: Query, caller-owned history, privacy mode and optional profile

    Returns:
        SearchResponse, or a JSON error body with the error code
    """
    orchestrator = _get_session(session_id)

    if not request.query.strip():
        raise HTTPException(status_code=400, detail="Query field is required and cannot be empty")

    try:
        profile = request.profile.to_profile() if request.profile else None
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        result = await orchestrator.search(
            request.query,
            history=[turn.to_turn() for turn in request.history],
            privacy_mode=request.privacy_mode,
            tor_requested=request.tor_requested,
            profile=profile,
        )
    except AssistantError as e:
        logger.error(f"Search failed: {e.error.code}", extra={"session_id": session_id})
        return _error_response(e)

    return SearchResponse.from_result(result)


@app.post("/sessions/{session_id}/warmup", response_model=SessionResponse)
async def warmup_endpoint(session_id: str) -> SessionResponse:
    """Warm up the composition backend; best-effort."""
    orchestrator = _get_session(session_id)
    await orchestrator.warmup()
    return _session_response(orchestrator)


@app.post("/sessions/{session_id}/reset", response_model=SessionResponse)
async def reset_endpoint(session_id: str) -> SessionResponse:
    """Start a new conversation in this session."""
    orchestrator = _get_session(session_id)
    orchestrator.cancel_pending()
    await orchestrator.new_conversation()
    return _session_response(orchestrator)


@app.post("/sessions/{session_id}/tor")
async def tor_endpoint(session_id: str, request: TorConfigRequest):
    """Enable or disable the Tor channel for this session."""
    orchestrator = _get_session(session_id)
    if not request.enabled:
        await orchestrator.disable_tor_proxy()
        return _session_response(orchestrator)

    try:
        ready = await orchestrator.configure_tor_proxy(request.proxy_url or TOR_PROXY_URL)
    except AssistantError as e:
        return _error_response(e)
    if not ready:
        return _error_response(ChannelUnavailableError(
            "Tor proxy not available. Start your Tor client and try again."
        ))
    return _session_response(orchestrator)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Carl Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
