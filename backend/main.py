from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from pathlib import Path
from dotenv import load_dotenv
import traceback

from billing import (
    ActionInProgressError,
    BillingUnavailableError,
    ProfileStore,
    QuotaExceededError,
    SessionContext,
    SessionNotFoundError,
    SessionRegistry,
    WebhookSignatureError,
    create_checkout_session,
    handle_webhook,
    verify_checkout_session,
)
from extraction import AttachmentTooLargeError, DocumentExtractionError, UploadedFile, extract_documents
from flashcards import EmptyDeckError, FlashcardDeck
from llm import ContentGenerator, GeneratorUnavailableError, MalformedGenerationError
from llm.llm_transform import (
    MINDMAP_CHILDREN_PER_NODE,
    MINDMAP_MAX_LEVELS,
    create_concept_map,
    create_flashcards,
    create_mindmap,
    flatten_document_to_text,
    normalize_summary_type,
    summarize_content,
    summary_title,
)
from mindmap import export_filename, export_html, load_export, to_outline_text

load_dotenv()

app = FastAPI()

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

sessions = SessionRegistry()
profiles = ProfileStore.from_env()

# Created on first use so the app starts without an API key.
_generator: Optional[ContentGenerator] = None


def get_generator() -> ContentGenerator:
    global _generator
    if _generator is None:
        _generator = ContentGenerator()
    return _generator


def get_session(x_session_id: Optional[str] = Header(default=None)) -> SessionContext:
    if not x_session_id:
        raise HTTPException(status_code=401, detail="Missing X-Session-Id header")
    try:
        return sessions.get(x_session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=401, detail="Unknown or expired session")


def http_error(action: str, e: Exception) -> HTTPException:
    """Map a failed action onto the HTTP status the frontend expects."""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, ActionInProgressError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, QuotaExceededError):
        return HTTPException(status_code=402, detail=str(e))
    if isinstance(e, AttachmentTooLargeError):
        return HTTPException(status_code=413, detail=str(e))
    if isinstance(e, DocumentExtractionError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, EmptyDeckError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, GeneratorUnavailableError):
        print(f"[{action}] Generator unavailable: {e}")
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, MalformedGenerationError):
        print(f"[{action}] Unusable model output: {e}")
        print(f"[{action}] Raw excerpt: {e.raw_excerpt[:500]}")
        return HTTPException(status_code=502, detail=f"Could not build the {action}: {e} Please try again.")
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    print(f"[{action}] Unexpected error: {e}")
    traceback.print_exc()
    return HTTPException(status_code=500, detail=f"Error generating {action}: {str(e)}")


class SessionRequest(BaseModel):
    user_id: str
    email: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    plan: str
    attempts_left: Optional[int] = None


class SummaryResponse(BaseModel):
    summary: str
    title: str
    summary_type: str
    sources: List[str] = []
    attempts_left: Optional[int] = None


class PresentRequest(BaseModel):
    presentation_type: str = "extensive"


class MindmapRequest(BaseModel):
    text: Optional[str] = None
    source: Literal["summary", "concept_map"] = "summary"
    max_levels: int = Field(default=MINDMAP_MAX_LEVELS, ge=1)
    children_per_node: int = Field(default=MINDMAP_CHILDREN_PER_NODE, ge=1)
    orientation: Literal["horizontal", "vertical"] = "horizontal"


class ViewRequest(BaseModel):
    node_id: Optional[str] = None
    factor: Optional[float] = None
    scale: Optional[float] = None
    dx: float = 0.0
    dy: float = 0.0
    delta_y: float = 0.0


class PointerEvent(BaseModel):
    type: Literal["down", "move", "up", "cancel", "wheel"]
    pointer_id: int = 0
    x: float = 0.0
    y: float = 0.0
    node_id: Optional[str] = None
    delta_y: float = 0.0


class PointerEventsRequest(BaseModel):
    events: List[PointerEvent]


class FlashcardsRequest(BaseModel):
    min_cards: int = Field(default=10, ge=1)
    max_cards: int = Field(default=20, ge=1)
    seed: Optional[int] = None


class CheckoutRequest(BaseModel):
    user_id: str
    email: Optional[str] = None


def _session_info(session: SessionContext) -> SessionResponse:
    return SessionResponse(session_id=session.session_id, plan=session.plan, attempts_left=session.attempts_left)


def _require_view(session: SessionContext):
    if session.view is None:
        raise HTTPException(status_code=404, detail="No mind map in this session yet")
    return session.view


def _require_deck(session: SessionContext) -> FlashcardDeck:
    if session.deck is None:
        raise HTTPException(status_code=404, detail="No flashcards in this session yet")
    return session.deck


@app.get("/api/health")
def health_check():
    return {"status": "Backend API is running"}


# -- session -------------------------------------------------------------

@app.post("/api/session", response_model=SessionResponse)
async def start_session(request: SessionRequest):
    profile = await run_in_threadpool(profiles.ensure_profile, request.user_id, request.email)
    session = sessions.create(
        request.user_id,
        email=request.email,
        plan=profile.get("plan") or "free",
        attempts=profile.get("attempts") or 0,
    )
    print(f"Started session {session.session_id} for {request.user_id} ({session.plan})")
    return _session_info(session)


@app.get("/api/session", response_model=SessionResponse)
async def session_status(session: SessionContext = Depends(get_session)):
    # Picks up an upgrade applied by the webhook in the meantime.
    session.plan = await run_in_threadpool(profiles.get_plan, session.user_id)
    return _session_info(session)


@app.delete("/api/session/{session_id}")
async def end_session(session_id: str):
    try:
        sessions.end(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    print(f"Ended session {session_id}")
    return {"message": "Session ended"}


# -- generation ----------------------------------------------------------

@app.post("/api/summarize", response_model=SummaryResponse)
async def summarize(
    files: Optional[List[UploadFile]] = File(default=None),
    text: Optional[str] = Form(default=None),
    summary_type: str = Form(default="short"),
    session: SessionContext = Depends(get_session),
    generator: ContentGenerator = Depends(get_generator),
):
    print("=== /api/summarize ===")
    kind = normalize_summary_type(summary_type)
    try:
        with session.begin("summary"):
            session.check_quota()
            uploads = []
            for upload in files or []:
                print(f"Received {upload.filename} ({upload.content_type})")
                uploads.append(UploadedFile(
                    filename=upload.filename or "upload",
                    content_type=upload.content_type or "",
                    data=await upload.read(),
                ))
            extracted = await run_in_threadpool(extract_documents, uploads, [text] if text else [])
            summary = await summarize_content(
                extracted.text, kind, generator, attachments=extracted.attachments
            )
            session.commit_summary(summary, summary_title(summary))
            session.attempts += 1
            await run_in_threadpool(profiles.set_attempts, session.user_id, session.attempts)
    except Exception as e:
        raise http_error("summary", e)

    return SummaryResponse(
        summary=session.summary,
        title=session.summary_title,
        summary_type=kind.value,
        sources=extracted.sources,
        attempts_left=session.attempts_left,
    )


@app.post("/api/present")
async def present(
    request: PresentRequest,
    session: SessionContext = Depends(get_session),
    generator: ContentGenerator = Depends(get_generator),
):
    print(f"=== /api/present ({request.presentation_type}) ===")
    try:
        with session.begin("concept map"):
            document = await create_concept_map(session.summary, request.presentation_type, generator)
            session.concept_map = document
    except Exception as e:
        raise http_error("concept map", e)
    return {"title": document.display_title, "document": document.to_payload()}


@app.post("/api/mindmap")
async def mindmap(
    request: MindmapRequest,
    session: SessionContext = Depends(get_session),
    generator: ContentGenerator = Depends(get_generator),
):
    print("=== /api/mindmap ===")
    text = request.text
    if not text and request.source == "concept_map" and session.concept_map is not None:
        text = flatten_document_to_text(session.concept_map)
    if not text:
        text = session.summary
    try:
        with session.begin("mind map"):
            document = await create_mindmap(
                text,
                generator,
                max_levels=request.max_levels,
                children_per_node=request.children_per_node,
                title=session.summary_title,
            )
            session.commit_document(document, orientation=request.orientation)
    except Exception as e:
        raise http_error("mind map", e)
    return {"document": document.to_payload(), "view": session.view.snapshot()}


@app.post("/api/flashcards")
async def flashcards(
    request: FlashcardsRequest,
    session: SessionContext = Depends(get_session),
    generator: ContentGenerator = Depends(get_generator),
):
    print("=== /api/flashcards ===")
    try:
        with session.begin("flashcards"):
            cards = await create_flashcards(
                session.summary, generator, min_cards=request.min_cards, max_cards=request.max_cards
            )
            session.commit_deck(FlashcardDeck.create(cards, seed=request.seed))
    except Exception as e:
        raise http_error("flashcards", e)
    return session.deck.state()


@app.get("/api/flashcards")
async def flashcards_state(session: SessionContext = Depends(get_session)):
    return _require_deck(session).state()


@app.post("/api/flashcards/{action}")
async def flashcards_action(action: str, session: SessionContext = Depends(get_session)):
    deck = _require_deck(session)
    if action == "next":
        deck.next()
    elif action == "prev":
        deck.prev()
    elif action == "flip":
        deck.flip()
    else:
        raise HTTPException(status_code=404, detail=f"Unknown flashcard action: {action}")
    return deck.state()


# -- interactive view ----------------------------------------------------

@app.get("/api/view")
async def view_state(session: SessionContext = Depends(get_session)):
    return _require_view(session).snapshot()


@app.post("/api/view/events")
async def view_events(request: PointerEventsRequest, session: SessionContext = Depends(get_session)):
    """Replay raw pointer/wheel events through the gesture tracker."""
    view = _require_view(session)
    tracker = session.gestures
    toggled = []
    for event in request.events:
        if event.type == "down":
            tracker.pointer_down(event.pointer_id, event.x, event.y, node_id=event.node_id)
        elif event.type == "move":
            tracker.pointer_move(event.pointer_id, event.x, event.y)
        elif event.type == "up":
            result = tracker.pointer_up(event.pointer_id)
            if result is not None:
                toggled.append(result)
        elif event.type == "cancel":
            tracker.pointer_cancel(event.pointer_id)
        else:
            tracker.wheel(event.delta_y)
    return {"mode": tracker.mode, "toggled": toggled, "view": view.snapshot()}


@app.post("/api/view/{op}")
async def view_operation(op: str, request: Optional[ViewRequest] = None, session: SessionContext = Depends(get_session)):
    view = _require_view(session)
    request = request or ViewRequest()
    if op == "toggle":
        if not request.node_id:
            raise HTTPException(status_code=400, detail="node_id is required")
        view.toggle(request.node_id)
    elif op == "expand-all":
        view.expand_all()
    elif op == "collapse-all":
        view.collapse_all()
    elif op == "zoom":
        if request.scale is not None:
            view.set_scale(request.scale)
        else:
            view.zoom(request.factor if request.factor is not None else 1.1)
    elif op == "wheel":
        view.wheel(request.delta_y)
    elif op == "pan":
        view.pan(request.dx, request.dy)
    elif op == "center":
        view.center()
    else:
        raise HTTPException(status_code=404, detail=f"Unknown view operation: {op}")
    return view.snapshot()


# -- exports -------------------------------------------------------------

@app.get("/api/export/html")
async def export_html_file(session: SessionContext = Depends(get_session)):
    view = _require_view(session)
    data = export_html(view.document, view.camera, view.open_set, orientation=view.orientation)
    filename = export_filename(view.document.display_title, "html")
    print(f"Exported {filename} ({len(data)} bytes)")
    return Response(
        content=data,
        media_type="text/html; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/export/text")
async def export_text_file(session: SessionContext = Depends(get_session)):
    view = _require_view(session)
    filename = export_filename(view.document.display_title, "txt")
    return PlainTextResponse(
        to_outline_text(view.document),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/export/import")
async def import_export(file: UploadFile = File(...), session: SessionContext = Depends(get_session)):
    """Reopen a previously exported HTML file with its camera and open nodes."""
    try:
        document, camera, open_ids = load_export(await file.read())
    except (ValueError, UnicodeDecodeError, MalformedGenerationError) as e:
        raise HTTPException(status_code=400, detail=f"Not a mind map export: {e}")
    session.commit_document(document, camera=camera, open_ids=open_ids)
    return session.view.snapshot()


# -- billing -------------------------------------------------------------

@app.post("/api/checkout")
async def checkout(request: CheckoutRequest):
    try:
        url = await run_in_threadpool(create_checkout_session, request.user_id, request.email)
    except BillingUnavailableError as e:
        print(f"[billing] Checkout failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"url": url}


def _upgrade_sessions(user_id: Optional[str]):
    for session in sessions.for_user(user_id):
        session.plan = "pro"


@app.get("/api/checkout/verify")
async def checkout_verify(session_id: str):
    try:
        result = await run_in_threadpool(verify_checkout_session, session_id, profiles)
    except BillingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result["paid"]:
        _upgrade_sessions(result["user_id"])
    return result


@app.post("/api/stripe/webhook")
async def stripe_webhook(request: Request):
    payload = await request.body()
    signature = request.headers.get("stripe-signature", "")
    try:
        user_id = await run_in_threadpool(handle_webhook, payload, signature, profiles)
    except WebhookSignatureError as e:
        raise HTTPException(status_code=400, detail=f"Webhook error: {e}")
    except BillingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if user_id:
        _upgrade_sessions(user_id)
    return {"received": True}


# Mount static files (built frontend)
dist_path = Path(__file__).parent.parent / "dist"
if dist_path.exists():
    app.mount("/assets", StaticFiles(directory=str(dist_path / "assets")), name="assets")

    @app.get("/{full_path:path}")
    async def serve_frontend(full_path: str):
        # Don't serve frontend for API routes - these should be handled by API endpoints above
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="API endpoint not found")

        file_path = dist_path / full_path
        if file_path.exists() and file_path.is_file():
            return FileResponse(file_path)
        return FileResponse(dist_path / "index.html")
else:
    @app.get("/")
    def read_root():
        return {"status": "Backend API is running", "note": "Frontend not built. Run in dev mode or build first."}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
