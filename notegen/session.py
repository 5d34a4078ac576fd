"""Per-browser session state: credentials, the active input and the last result."""

from __future__ import annotations

import logging
import secrets
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from config_helpers import (
    ENV_PATH,
    GROQ_KEY_NAME,
    MISTRAL_KEY_NAME,
    collect_preserved_lines,
    parse_env_file,
    preview_key,
    write_env_file,
)

from .core import DEFAULT_PROMPT, UploadedFile
from .errors import NoteError, validation_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextInput:
    text: str = ""

    mode = "text"


@dataclass(frozen=True)
class AudioInput:
    upload: UploadedFile

    mode = "audio"


@dataclass(frozen=True)
class PdfInput:
    upload: UploadedFile

    mode = "pdf"


InputSelection = Union[TextInput, AudioInput, PdfInput]


class CredentialStore:
    """The two API keys, loaded once and written back on every edit."""

    def __init__(self, path: Path = ENV_PATH) -> None:
        self.path = path
        stored = parse_env_file(path)
        self._values = {key: stored.get(key, "") for key in (GROQ_KEY_NAME, MISTRAL_KEY_NAME)}

    def get(self, name: str) -> str:
        return self._values.get(name, "")

    def set(self, name: str, value: str) -> None:
        if name not in self._values:
            raise KeyError(name)
        self._values[name] = value
        preserved = collect_preserved_lines(self.path)
        write_env_file(self._values, preserved, self.path)


@dataclass
class NoteSession:
    groq_api_key: str = ""
    mistral_api_key: str = ""
    selection: InputSelection = field(default_factory=TextInput)
    prompt_key: str = DEFAULT_PROMPT
    custom_prompt: str = ""
    processed_text: str = ""
    notes: str = ""
    error: Optional[NoteError] = None
    busy: bool = False
    store: Optional[CredentialStore] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def from_store(cls, store: CredentialStore) -> "NoteSession":
        return cls(
            groq_api_key=store.get(GROQ_KEY_NAME),
            mistral_api_key=store.get(MISTRAL_KEY_NAME),
            store=store,
        )

    def set_groq_api_key(self, value: str) -> None:
        with self._lock:
            self._check_idle()
            self.groq_api_key = value
        if self.store is not None:
            self.store.set(GROQ_KEY_NAME, value)

    def set_mistral_api_key(self, value: str) -> None:
        with self._lock:
            self._check_idle()
            self.mistral_api_key = value
        if self.store is not None:
            self.store.set(MISTRAL_KEY_NAME, value)

    def set_prompt(self, prompt_key: str, custom_prompt: str = "") -> None:
        with self._lock:
            self._check_idle()
            self.prompt_key = prompt_key
            self.custom_prompt = custom_prompt

    def select_text(self, text: str) -> None:
        self._select(TextInput(text))

    def select_audio(self, upload: UploadedFile) -> None:
        rejection = None if upload.is_audio() else "Please select a valid audio file."
        self._select(AudioInput(upload), rejection)

    def select_pdf(self, upload: UploadedFile) -> None:
        rejection = None if upload.is_pdf() else "Please select a valid PDF file."
        self._select(PdfInput(upload), rejection)

    def _select(self, selection: InputSelection, rejection: Optional[str] = None) -> None:
        with self._lock:
            self._check_idle()
            if rejection:
                # the active input stays as it was
                self.error = validation_error(rejection)
                raise self.error
            self.selection = selection
            self.reset_output()

    def _check_idle(self) -> None:
        # callers hold self._lock
        if self.busy:
            raise validation_error("A request is already in progress.", status=409)

    def reset_output(self) -> None:
        self.processed_text = ""
        self.notes = ""
        self.error = None

    def begin(self) -> bool:
        with self._lock:
            if self.busy:
                return False
            self.busy = True
            return True

    def finish(self) -> None:
        with self._lock:
            self.busy = False

    def snapshot(self) -> dict:
        selection = self.selection
        upload = getattr(selection, "upload", None)
        return {
            "activeInput": selection.mode,
            "text": selection.text if isinstance(selection, TextInput) else "",
            "fileName": upload.filename if upload else None,
            "prompt": self.prompt_key,
            "customPrompt": self.custom_prompt,
            "processedText": self.processed_text,
            "notes": self.notes,
            "error": self.error.to_payload() if self.error else None,
            "busy": self.busy,
            "credentials": {
                "groq": {"set": bool(self.groq_api_key.strip()), "preview": _preview(self.groq_api_key)},
                "mistral": {"set": bool(self.mistral_api_key.strip()), "preview": _preview(self.mistral_api_key)},
            },
        }


def _preview(key: str) -> str:
    return preview_key(key) if key else ""


class SessionRegistry:
    """In-memory sessions keyed by an opaque cookie value.

    At most ``max_sessions`` are kept; the least recently used one is dropped
    together with any upload it still holds.
    """

    def __init__(self, store: CredentialStore, max_sessions: int = 64) -> None:
        self.store = store
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, NoteSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(self, session_id: Optional[str]) -> tuple[str, NoteSession]:
        with self._lock:
            if session_id and session_id in self._sessions:
                self._sessions.move_to_end(session_id)
                return session_id, self._sessions[session_id]
            new_id = secrets.token_urlsafe(16)
            session = NoteSession.from_store(self.store)
            self._sessions[new_id] = session
            logger.debug("Created session %s", new_id[:6])
            while len(self._sessions) > self.max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted session %s", evicted_id[:6])
            return new_id, session
