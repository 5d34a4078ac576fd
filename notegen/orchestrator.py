"""Turn the active input of a session into markdown notes."""

from __future__ import annotations

import logging
from typing import Protocol

from . import core
from .core import UploadedFile
from .errors import ErrorKind, NoteError, empty_error, validation_error
from .session import AudioInput, NoteSession, PdfInput, TextInput

logger = logging.getLogger(__name__)


class NoteServices(Protocol):
    """The three remote collaborators, as seen by the orchestrator."""

    def transcribe(self, upload: UploadedFile, api_key: str) -> str:
        ...

    def extract_text(self, upload: UploadedFile) -> str:
        ...

    def generate_notes(self, text: str, api_key: str, instruction: str) -> str:
        ...


class LocalNoteServices:
    """Calls the vendor APIs and PyMuPDF directly from this process."""

    def transcribe(self, upload: UploadedFile, api_key: str) -> str:
        return core.transcribe_audio(upload, api_key)

    def extract_text(self, upload: UploadedFile) -> str:
        return core.extract_text_from_pdf(upload.data)

    def generate_notes(self, text: str, api_key: str, instruction: str) -> str:
        return core.generate_notes_from_text(text, api_key, instruction)


def process_input(session: NoteSession, services: NoteServices) -> str:
    """Normalise the active input to text, then generate notes from it.

    At most two calls are made, one after the other. The normalised text is
    stored on the session before the notes are requested so a caller polling
    the session sees it first. Any failure is stored on the session and
    re-raised; nothing is retried.
    """
    if not session.begin():
        raise validation_error("A request is already in progress.", status=409)
    try:
        session.reset_output()
        try:
            notes = _run(session, services)
        except NoteError as exc:
            logger.warning("Request failed (%s, %s): %s", exc.kind.value, exc.status, exc.message)
            session.error = exc
            raise
        except Exception as exc:
            logger.exception("Request failed unexpectedly")
            error = NoteError(ErrorKind.UPSTREAM, "Failed to process input.", status=500, details=str(exc))
            session.error = error
            raise error from exc
        session.notes = notes
        logger.info("Generated %d characters of notes", len(notes))
        return notes
    finally:
        session.finish()


def _run(session: NoteSession, services: NoteServices) -> str:
    selection = session.selection
    groq_key = session.groq_api_key.strip()
    mistral_key = session.mistral_api_key.strip()

    if isinstance(selection, AudioInput) and not groq_key:
        raise validation_error("Please enter your Groq API Key for audio transcription.")
    if not mistral_key:
        raise validation_error("Please enter your Mistral API Key for note generation.")
    instruction = core.resolve_instruction(session.prompt_key, session.custom_prompt)

    if isinstance(selection, AudioInput):
        if not selection.upload.data:
            raise validation_error("The selected audio file is empty.")
        logger.info("Processing audio file %s", selection.upload.filename)
        text = services.transcribe(selection.upload, groq_key)
    elif isinstance(selection, PdfInput):
        logger.info("Processing PDF file %s", selection.upload.filename)
        text = services.extract_text(selection.upload)
    elif isinstance(selection, TextInput):
        text = selection.text
    session.processed_text = text

    if not isinstance(selection, TextInput) and not text:
        raise empty_error("Could not extract text from the uploaded file.")

    return services.generate_notes(text, mistral_key, instruction)
