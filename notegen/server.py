from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from config_helpers import ENV_PATH
from fastapi import Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from notegen.core import (
    CUSTOM_PROMPT,
    DEFAULT_PROMPT,
    NOTES_MODEL,
    PDF_MEDIA_TYPE,
    PROMPT_OPTIONS,
    TRANSCRIPTION_MODEL,
    UploadedFile,
    extract_text_from_pdf,
    generate_notes_from_text,
    transcribe_audio,
)
from notegen.errors import NoteError, validation_error
from notegen.orchestrator import LocalNoteServices, NoteServices, process_input
from notegen.session import CredentialStore, NoteSession, SessionRegistry

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = BASE_DIR / "static"
SESSION_COOKIE = "notegen_session"

_credentials = CredentialStore(ENV_PATH)
_sessions = SessionRegistry(_credentials)
_services: NoteServices = LocalNoteServices()

app = FastAPI(title="notegen web")

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.exception_handler(NoteError)
async def note_error_handler(request: Request, exc: NoteError) -> JSONResponse:
    logger.info("%s %s failed with %s: %s", request.method, request.url.path, exc.status, exc.message)
    return JSONResponse(exc.to_payload(), status_code=exc.status)


def _read_index() -> str:
    index_path = STATIC_DIR / "index.html"
    if not index_path.exists():
        return "<h1>notegen</h1><p>Frontend is missing. Build static/.</p>"
    return index_path.read_text(encoding="utf-8")


async def _read_upload(file: UploadFile | None, missing_message: str) -> UploadedFile:
    if not file or not file.filename:
        raise validation_error(missing_message)
    try:
        data = await file.read()
    finally:
        await file.close()
    return UploadedFile(filename=file.filename, content_type=file.content_type or "", data=data)


def _current_session(request: Request, response: Response) -> NoteSession:
    session_id, session = _sessions.get_or_create(request.cookies.get(SESSION_COOKIE))
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return session


@app.get("/", response_class=HTMLResponse)
def read_index() -> str:
    return _read_index()


@app.get("/healthz")
def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok"})


@app.get("/api/options")
def api_options() -> dict:
    return {
        "prompts": [
            {"key": key, "label": data["label"], "instruction": data["instruction"]}
            for key, data in PROMPT_OPTIONS.items()
        ]
        + [{"key": CUSTOM_PROMPT, "label": "Custom Prompt", "instruction": ""}],
        "defaultPrompt": DEFAULT_PROMPT,
        "models": {"transcription": TRANSCRIPTION_MODEL, "notes": NOTES_MODEL},
    }


@app.post("/api/transcribe-audio")
async def api_transcribe_audio(
    audio: UploadFile | None = File(default=None),
    credential: str = Form(""),
) -> dict:
    upload = await _read_upload(audio, "Missing audio file in request data.")
    if not credential.strip():
        raise validation_error("Missing Groq API key in request data.")
    transcript = await run_in_threadpool(transcribe_audio, upload, credential)
    return {"transcript": transcript}


@app.post("/api/process-pdf")
async def api_process_pdf(pdf: UploadFile | None = File(default=None)) -> dict:
    upload = await _read_upload(pdf, "Missing pdf file in request data.")
    if (upload.content_type or "").lower() != PDF_MEDIA_TYPE:
        raise validation_error("Invalid file type. Please upload a PDF.")
    text = await run_in_threadpool(extract_text_from_pdf, upload.data)
    return {"text": text}


class GenerateNotesPayload(BaseModel):
    text: str = ""
    credential: str = ""
    instruction: Optional[str] = None


@app.post("/api/generate-notes")
async def api_generate_notes(payload: GenerateNotesPayload) -> dict:
    notes = await run_in_threadpool(
        generate_notes_from_text, payload.text, payload.credential, payload.instruction
    )
    return {"notes": notes}


@app.get("/api/session")
def api_get_session(session: NoteSession = Depends(_current_session)) -> dict:
    return session.snapshot()


class CredentialsPayload(BaseModel):
    groqApiKey: Optional[str] = None
    mistralApiKey: Optional[str] = None


@app.put("/api/session/credentials")
def api_set_credentials(
    payload: CredentialsPayload, session: NoteSession = Depends(_current_session)
) -> dict:
    if payload.groqApiKey is not None:
        session.set_groq_api_key(payload.groqApiKey)
    if payload.mistralApiKey is not None:
        session.set_mistral_api_key(payload.mistralApiKey)
    return session.snapshot()


class PromptPayload(BaseModel):
    prompt: str = DEFAULT_PROMPT
    customPrompt: str = ""


@app.put("/api/session/prompt")
def api_set_prompt(payload: PromptPayload, session: NoteSession = Depends(_current_session)) -> dict:
    if payload.prompt != CUSTOM_PROMPT and payload.prompt not in PROMPT_OPTIONS:
        raise validation_error(f"Unknown prompt: {payload.prompt}.")
    session.set_prompt(payload.prompt, payload.customPrompt)
    return session.snapshot()


class TextPayload(BaseModel):
    text: str = ""


@app.post("/api/session/text")
def api_select_text(payload: TextPayload, session: NoteSession = Depends(_current_session)) -> dict:
    session.select_text(payload.text)
    return session.snapshot()


@app.post("/api/session/audio")
async def api_select_audio(
    audio: UploadFile | None = File(default=None),
    session: NoteSession = Depends(_current_session),
) -> dict:
    upload = await _read_upload(audio, "Missing audio file in request data.")
    session.select_audio(upload)
    return session.snapshot()


@app.post("/api/session/pdf")
async def api_select_pdf(
    pdf: UploadFile | None = File(default=None),
    session: NoteSession = Depends(_current_session),
) -> dict:
    upload = await _read_upload(pdf, "Missing pdf file in request data.")
    session.select_pdf(upload)
    return session.snapshot()


@app.post("/api/session/process")
async def api_process(session: NoteSession = Depends(_current_session)) -> dict:
    notes = await run_in_threadpool(process_input, session, _services)
    return {"processedText": session.processed_text, "notes": notes}
