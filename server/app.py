"""FastAPI server for retype application."""

import asyncio
import logging
import os
import re
import time

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Optional

from core.config import DEFAULT_STORAGE, MAX_KEYSTROKES_PER_EDIT, SAVE_THROTTLE_MS
from core.editing import predict_edit
from core.errors import HashComputationFailure, InvalidState
from core.interfaces import SnapshotStore
from core.metrics import session_metrics, text_stats
from core.models import PracticeSession
from core.snapshot import SnapshotRecorder, resume
from core.utils import compute_content_hash, split_into_sentences

from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Pydantic models for API
class TextRequest(BaseModel):
    text: str
    split_pattern: str = ''
    filter_pattern: str = ''
    filter_replacement: str = ''
    use_segmenter: bool = False


class TextResponse(BaseModel):
    sentences: list[str]
    content_hash: str
    sentence_count: int
    character_count: int
    estimated_minutes: int


class StartRequest(BaseModel):
    sentences: list[str]
    randomize: bool = False


class EditRequest(BaseModel):
    before: str
    after: str
    inserted: int = Field(0, ge=0)        # Characters durably inserted by this edit
    keystrokes: int = Field(1, ge=0, le=MAX_KEYSTROKES_PER_EDIT)  # Key presses that produced this edit
    composition: bool = False             # True for an IME composition commit


class InputRequest(BaseModel):
    input_type: str                       # e.g. insertText, deleteContentBackward
    data: Optional[str] = None
    selection_start: Optional[int] = None
    selection_end: Optional[int] = None
    keystrokes: int = Field(1, ge=0, le=MAX_KEYSTROKES_PER_EDIT)


class SessionResponse(BaseModel):
    content_hash: str
    state: str
    current_index: int
    total_sentences: int
    previous_sentence: Optional[str]
    current_sentence: Optional[str]
    next_sentence: Optional[str]
    completed_sentences: list[int]
    skipped_count: int
    committed_chars: int
    contribution: dict  # {positive, negative, neutral}
    elapsed_seconds: int
    randomize_order: bool
    typed_text: str
    accuracy: int
    speed: int
    productivity: float
    productivity_display: str
    earned_chars: int
    progress_percent: int
    elapsed_display: str  # "M:SS"


class EditResponse(SessionResponse):
    sign: Optional[int]
    advanced: bool


# Global state (in production, use proper DI)
storage: SnapshotStore = None
save_throttle_ms: int = SAVE_THROTTLE_MS
clock = time.time
sessions: dict[str, PracticeSession] = {}  # content_hash -> live session


def _now() -> float:
    return clock()


def configure(store: SnapshotStore, throttle_ms: int = SAVE_THROTTLE_MS) -> None:
    """Install the snapshot store and forget every live session."""
    global storage, save_throttle_ms
    storage = store
    save_throttle_ms = throttle_ms
    sessions.clear()


def new_recorder() -> SnapshotRecorder:
    return SnapshotRecorder(storage, throttle_ms=save_throttle_ms, clock=_now)


def log_event(event: str, content_hash: str, **data) -> None:
    """Log an event to the database."""
    if storage and hasattr(storage, 'log_event'):
        storage.log_event(event, content_hash, **data)


def get_session(content_hash: str) -> PracticeSession:
    session = sessions.get(content_hash)
    if session is None:
        raise HTTPException(status_code=404, detail="No active session for this text")
    return session


def build_response(session: PracticeSession) -> dict:
    """Tick the session and gather its view and metrics."""
    session.tick()
    data = session.to_dict()
    data.update(session_metrics(session))
    return data


app = FastAPI(title="Retype API", description="Typing practice session API")


@app.on_event("startup")
async def startup():
    """Initialize storage on startup."""
    # File storage by default, set RETYPE_STORAGE=postgres to use PostgreSQL
    storage_type = os.environ.get('RETYPE_STORAGE', DEFAULT_STORAGE)
    if storage_type == 'postgres':
        store = PostgresStorage()
        logger.info("Using PostgreSQL storage")
    else:
        store = FileStorage(state_dir=os.environ.get('RETYPE_STATE_DIR'))
        logger.info(f"Using file storage in {store.state_dir}")

    throttle_ms = SAVE_THROTTLE_MS
    try:
        config = store.load_config()
        throttle_ms = int(config.get('save_throttle_ms', throttle_ms))
    except FileNotFoundError:
        pass
    if os.environ.get('RETYPE_SAVE_THROTTLE_MS'):
        throttle_ms = int(os.environ['RETYPE_SAVE_THROTTLE_MS'])

    configure(store, throttle_ms)
    logger.info(f"Snapshot throttle: {throttle_ms}ms")


@app.get("/")
async def root():
    """Health check."""
    return {"service": "retype", "status": "ok"}


@app.post("/api/texts", response_model=TextResponse)
async def process_text(request: TextRequest):
    """Split practice material into sentences and hash them."""
    try:
        sentences = split_into_sentences(
            request.text,
            split_pattern=request.split_pattern,
            filter_pattern=request.filter_pattern,
            filter_replacement=request.filter_replacement,
            use_segmenter=request.use_segmenter
        )
    except re.error as e:
        raise HTTPException(status_code=400, detail=f"Invalid pattern: {e}")

    if not sentences:
        raise HTTPException(status_code=400, detail="No usable sentences found in the text")

    loop = asyncio.get_event_loop()
    try:
        content_hash = await loop.run_in_executor(None, compute_content_hash, sentences)
    except HashComputationFailure as e:
        logger.error(f"Hashing failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return TextResponse(sentences=sentences, content_hash=content_hash, **text_stats(sentences))


@app.get("/api/snapshots")
async def list_snapshots():
    """List content hashes with resumable progress."""
    return {"snapshots": storage.list_snapshots()}


@app.post("/api/sessions", response_model=SessionResponse)
async def start_session(request: StartRequest):
    """Start a fresh run over a sentence set."""
    session = PracticeSession(clock=_now, recorder=new_recorder())
    try:
        session.start(request.sentences, randomize=request.randomize)
    except InvalidState as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HashComputationFailure as e:
        logger.error(f"Hashing failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    sessions[session.content_hash] = session
    log_event('session.start', session.content_hash,
              sentence_count=session.total_sentences,
              randomize=session.randomize_order)
    return SessionResponse(**build_response(session))


@app.get("/api/sessions/{content_hash}", response_model=SessionResponse)
async def get_session_status(content_hash: str):
    """Current position, timing and metrics."""
    session = get_session(content_hash)
    return SessionResponse(**build_response(session))


@app.post("/api/sessions/{content_hash}/edits", response_model=EditResponse)
async def submit_edit(content_hash: str, request: EditRequest):
    """Classify one edit against the current sentence, then check for a match."""
    session = get_session(content_hash)
    index_before = session.current_index
    try:
        if request.composition:
            sign = session.commit_composition(request.after, request.inserted,
                                              keystrokes=request.keystrokes,
                                              before=request.before)
        else:
            sign = session.apply_edit(request.before, request.after, request.inserted,
                                      keystrokes=request.keystrokes)
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error in submit_edit: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail=f"Internal error: {type(e).__name__}: {str(e)}")

    if session.is_complete:
        log_event('session.complete', content_hash,
                  elapsed=session.elapsed_seconds,
                  completed=len(session.completed_sentences),
                  skipped=session.skipped_count)
    return EditResponse(**build_response(session), sign=sign,
                        advanced=session.current_index != index_before)


@app.post("/api/sessions/{content_hash}/input", response_model=EditResponse)
async def submit_input(content_hash: str, request: InputRequest):
    """Apply a raw input event to the typed text, then classify it as an edit."""
    session = get_session(content_hash)
    if not session.is_running:
        raise HTTPException(status_code=409, detail=f"Session is {session.state}")

    # Key presses are buffered and credited to the next classified edit
    session.record_keystroke(request.keystrokes)
    prediction = predict_edit(session.typed_text, request.input_type, request.data,
                              request.selection_start, request.selection_end)
    if prediction is None:
        return EditResponse(**build_response(session), sign=None, advanced=False)

    after, inserted = prediction
    index_before = session.current_index
    sign = session.apply_edit(session.typed_text, after, inserted)
    if session.is_complete:
        log_event('session.complete', content_hash,
                  elapsed=session.elapsed_seconds,
                  completed=len(session.completed_sentences),
                  skipped=session.skipped_count)
    return EditResponse(**build_response(session), sign=sign,
                        advanced=session.current_index != index_before)


@app.post("/api/sessions/{content_hash}/skip", response_model=SessionResponse)
async def skip_sentence(content_hash: str):
    """Skip the current sentence."""
    session = get_session(content_hash)
    try:
        session.skip()
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e))
    if session.is_complete:
        log_event('session.complete', content_hash,
                  elapsed=session.elapsed_seconds,
                  completed=len(session.completed_sentences),
                  skipped=session.skipped_count)
    return SessionResponse(**build_response(session))


@app.post("/api/sessions/{content_hash}/back", response_model=SessionResponse)
async def previous_sentence(content_hash: str):
    """Go back to the previous sentence."""
    session = get_session(content_hash)
    try:
        session.go_back()
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SessionResponse(**build_response(session))


@app.post("/api/sessions/{content_hash}/retry", response_model=SessionResponse)
async def retry_session(content_hash: str):
    """Start the same sentence set again."""
    session = get_session(content_hash)
    session.retry()
    log_event('session.start', content_hash,
              sentence_count=session.total_sentences,
              randomize=session.randomize_order, retry=True)
    return SessionResponse(**build_response(session))


@app.delete("/api/sessions/{content_hash}", response_model=SessionResponse)
async def abandon_session(content_hash: str):
    """Leave a run before completion. Saved progress stays resumable."""
    session = get_session(content_hash)
    try:
        session.abandon()
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e))
    sessions.pop(content_hash, None)
    log_event('session.abandon', content_hash, current_index=session.current_index)
    return SessionResponse(**build_response(session))


@app.post("/api/sessions/{content_hash}/resume", response_model=SessionResponse)
async def resume_session(content_hash: str):
    """Rebuild a running session from saved progress."""
    session = resume(content_hash, storage, clock=_now, recorder=new_recorder())
    if session is None:
        raise HTTPException(status_code=404, detail="No saved progress for this text")
    sessions[content_hash] = session
    log_event('session.resume', content_hash, current_index=session.current_index)
    return SessionResponse(**build_response(session))


@app.get("/api/events/stats")
async def get_event_stats():
    """Get aggregated event statistics."""
    if not hasattr(storage, 'get_global_stats'):
        return {"error": "Event logging not available with current storage"}
    return storage.get_global_stats()


@app.get("/api/sessions/{content_hash}/events")
async def get_session_events(content_hash: str, event_type: str = None, limit: int = 50):
    """Get recent lifecycle events for a sentence set."""
    if not hasattr(storage, 'get_session_events'):
        return {"error": "Event logging not available with current storage"}

    events = storage.get_session_events(content_hash, event_type, limit)
    # Convert datetime objects to strings for JSON serialization
    for event in events:
        if 'timestamp' in event and hasattr(event['timestamp'], 'isoformat'):
            event['timestamp'] = event['timestamp'].isoformat()
    return {"events": events}


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
