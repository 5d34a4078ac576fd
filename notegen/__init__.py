"""Core helpers and web server for notegen."""

from .core import (
    DEFAULT_PROMPT,
    PROMPT_OPTIONS,
    UploadedFile,
    extract_text_from_pdf,
    generate_notes_from_text,
    resolve_instruction,
    transcribe_audio,
)
from .errors import ErrorKind, NoteError
from .orchestrator import LocalNoteServices, NoteServices, process_input
from .session import AudioInput, NoteSession, PdfInput, TextInput

__all__ = [
    "DEFAULT_PROMPT",
    "PROMPT_OPTIONS",
    "AudioInput",
    "ErrorKind",
    "LocalNoteServices",
    "NoteError",
    "NoteServices",
    "NoteSession",
    "PdfInput",
    "TextInput",
    "UploadedFile",
    "extract_text_from_pdf",
    "generate_notes_from_text",
    "process_input",
    "resolve_instruction",
    "transcribe_audio",
]
