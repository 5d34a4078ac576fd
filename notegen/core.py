from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
import openai
from dotenv import load_dotenv
from openai import OpenAI

from .errors import ErrorKind, NoteError, empty_error, validation_error

load_dotenv()

logger = logging.getLogger(__name__)

TRANSCRIPTION_MODEL = os.environ.get("NOTEGEN_TRANSCRIPTION_MODEL", "whisper-large-v3")
NOTES_MODEL = os.environ.get("NOTEGEN_NOTES_MODEL", "mistral-large-latest")
GROQ_BASE_URL = os.environ.get("NOTEGEN_GROQ_BASE_URL", "https://api.groq.com/openai/v1")
MISTRAL_BASE_URL = os.environ.get("NOTEGEN_MISTRAL_BASE_URL", "https://api.mistral.ai/v1")

PROMPT_OPTIONS = {
    "default": {
        "label": "Default Notes",
        "instruction": "Please process the following text and generate relevant notes or summaries in markdown:",
    },
    "summary": {
        "label": "Concise Summary",
        "instruction": "Summarize the following text concisely in markdown:",
    },
    "flashcards": {
        "label": "Flashcards (Q: A:)",
        "instruction": (
            "Generate flashcard questions and answers from the following text in markdown format (Q: A:):"
        ),
    },
    "keywords": {
        "label": "Extract Keywords",
        "instruction": (
            "Extract the most important keywords and concepts from the following text, "
            "presented as a comma-separated list:"
        ),
    },
    "summary_bullet": {
        "label": "Summarize in Bullet Points",
        "instruction": "Summarize the following text using bullet points, highlighting the key information:",
    },
    "detailed_explanation": {
        "label": "Detailed Explanation",
        "instruction": "Provide a detailed explanation of the key topics discussed in the following text:",
    },
}
DEFAULT_PROMPT = "default"
CUSTOM_PROMPT = "custom"

PDF_MEDIA_TYPE = "application/pdf"
GENERIC_MEDIA_TYPES = {"", "application/octet-stream"}
AUDIO_SUFFIXES = {".mp3", ".wav", ".m4a", ".ogg", ".flac", ".webm", ".mp4", ".mpeg", ".mpga", ".opus"}

_CLIENTS: dict[str, tuple[str, OpenAI]] = {}


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def suffix(self) -> str:
        return Path(self.filename or "").suffix.lower()

    def is_pdf(self) -> bool:
        media_type = (self.content_type or "").lower()
        if media_type == PDF_MEDIA_TYPE:
            return True
        return media_type in GENERIC_MEDIA_TYPES and self.suffix == ".pdf"

    def is_audio(self) -> bool:
        media_type = (self.content_type or "").lower()
        if media_type.startswith("audio/"):
            return True
        return self.suffix in AUDIO_SUFFIXES


def _get_client(base_url: str, api_key: str) -> OpenAI:
    # Groq and Mistral both speak the OpenAI wire format.
    cached = _CLIENTS.get(base_url)
    if cached is None or cached[0] != api_key:
        cached = (api_key, OpenAI(api_key=api_key, base_url=base_url))
        _CLIENTS[base_url] = cached
    return cached[1]


def _vendor_error(service: str, exc: Exception) -> NoteError:
    if isinstance(exc, openai.APIStatusError):
        return NoteError(
            ErrorKind.UPSTREAM,
            f"{service} API error: {exc.message}",
            status=exc.status_code,
            details=str(exc.body) if exc.body else None,
        )
    return NoteError(ErrorKind.UNREACHABLE, f"Could not reach the {service} API.", details=str(exc))


def resolve_instruction(prompt_key: str, custom_prompt: str = "") -> str:
    if prompt_key == CUSTOM_PROMPT:
        if not custom_prompt.strip():
            raise validation_error("Please enter your custom prompt.")
        return custom_prompt
    settings = PROMPT_OPTIONS.get(prompt_key)
    if not settings:
        raise validation_error(f"Unknown prompt: {prompt_key}.")
    return settings["instruction"]


def transcribe_audio(upload: UploadedFile, api_key: str) -> str:
    if not api_key or not api_key.strip():
        raise validation_error("Missing Groq API key.")
    if not upload.data:
        raise validation_error("The selected audio file is empty.")
    client = _get_client(GROQ_BASE_URL, api_key.strip())
    logger.info("Transcribing %s (%d bytes) with %s", upload.filename, len(upload.data), TRANSCRIPTION_MODEL)
    try:
        transcription = client.audio.transcriptions.create(
            model=TRANSCRIPTION_MODEL,
            file=(upload.filename or "audio", upload.data, upload.content_type or "application/octet-stream"),
        )
    except openai.OpenAIError as exc:
        logger.warning("Transcription failed: %s", exc)
        raise _vendor_error("Groq", exc) from exc
    return transcription.text or ""


def extract_text_from_pdf(data: bytes) -> str:
    if not data:
        raise validation_error("Missing PDF file.")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except RuntimeError as exc:  # FileDataError and friends
        raise NoteError(ErrorKind.VALIDATION, "Invalid or corrupted PDF file.", details=str(exc)) from exc
    pages = []
    try:
        if doc.needs_pass or doc.is_encrypted:
            raise NoteError(
                ErrorKind.VALIDATION,
                "Invalid or corrupted PDF file.",
                details="The PDF is password protected.",
            )
        for page in doc:
            page_text = page.get_text("text").strip()
            if page_text:
                pages.append(page_text)
    except (RuntimeError, ValueError) as exc:
        raise NoteError(ErrorKind.VALIDATION, "Invalid or corrupted PDF file.", details=str(exc)) from exc
    finally:
        doc.close()
    text = "\n\n".join(pages)
    if not text:
        raise empty_error("No text could be extracted from the PDF file.")
    logger.info("Extracted %d characters from %d PDF pages", len(text), len(pages))
    return text


def generate_notes_from_text(text: str, api_key: str, instruction: Optional[str] = None) -> str:
    if not text:
        raise validation_error("Missing text to process.")
    if not api_key or not api_key.strip():
        raise validation_error("Missing Mistral API key.")
    final_instruction = instruction or PROMPT_OPTIONS[DEFAULT_PROMPT]["instruction"]
    client = _get_client(MISTRAL_BASE_URL, api_key.strip())
    logger.info("Generating notes from %d characters with %s", len(text), NOTES_MODEL)
    try:
        response = client.chat.completions.create(
            model=NOTES_MODEL,
            messages=[{"role": "user", "content": f"{final_instruction}\n\n---\n{text}\n---"}],
        )
    except openai.OpenAIError as exc:
        logger.warning("Note generation failed: %s", exc)
        raise _vendor_error("Mistral", exc) from exc
    if not response.choices:
        raise empty_error("No choices returned from the notes API.")
    note = response.choices[0].message.content
    if not note:
        raise empty_error("The notes API returned no content.")
    return note
