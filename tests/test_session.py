"""Unit tests for notegen.session module."""

from __future__ import annotations

from pathlib import Path

import pytest

from config_helpers import parse_env_file
from notegen.core import UploadedFile
from notegen.errors import ErrorKind, NoteError
from notegen.session import (
    AudioInput,
    CredentialStore,
    NoteSession,
    PdfInput,
    SessionRegistry,
    TextInput,
)

AUDIO = UploadedFile("memo.mp3", "audio/mpeg", b"ID3")
PDF = UploadedFile("paper.pdf", "application/pdf", b"%PDF-1.7")


def _with_results(session: NoteSession) -> NoteSession:
    session.processed_text = "old text"
    session.notes = "# old notes"
    session.error = NoteError(ErrorKind.EMPTY, "old error")
    return session


class TestInputSelection:
    """Switching modes keeps exactly one input and resets everything else."""

    def test_default_selection_is_empty_text(self) -> None:
        assert NoteSession().selection == TextInput("")

    @pytest.mark.parametrize(
        "select, expected",
        [
            (lambda s: s.select_text("Hello"), TextInput("Hello")),
            (lambda s: s.select_audio(AUDIO), AudioInput(AUDIO)),
            (lambda s: s.select_pdf(PDF), PdfInput(PDF)),
        ],
    )
    def test_selecting_a_mode_clears_previous_payload_and_results(self, select, expected) -> None:
        for previous in (TextInput("draft"), AudioInput(AUDIO), PdfInput(PDF)):
            session = _with_results(NoteSession(selection=previous))

            select(session)

            assert session.selection == expected
            assert session.processed_text == ""
            assert session.notes == ""
            assert session.error is None

    def test_empty_text_keeps_text_mode_active(self) -> None:
        session = NoteSession(selection=PdfInput(PDF))

        session.select_text("")

        assert session.selection == TextInput("")

    def test_non_pdf_is_rejected_at_selection_time(self) -> None:
        session = _with_results(NoteSession(selection=AudioInput(AUDIO)))

        with pytest.raises(NoteError) as excinfo:
            session.select_pdf(UploadedFile("notes.txt", "text/plain", b"hi"))

        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert session.selection == AudioInput(AUDIO)
        assert session.error is excinfo.value
        assert session.notes == "# old notes"

    def test_non_audio_is_rejected_at_selection_time(self) -> None:
        session = NoteSession()

        with pytest.raises(NoteError, match="valid audio"):
            session.select_audio(UploadedFile("paper.pdf", "application/pdf", b"%PDF"))

        assert session.selection == TextInput("")

    def test_selection_is_refused_while_busy(self) -> None:
        session = NoteSession()
        assert session.begin()

        with pytest.raises(NoteError) as excinfo:
            session.select_text("new")

        assert excinfo.value.status == 409
        assert session.selection == TextInput("")


class TestBusyFlag:
    """Tests for the in-flight request flag."""

    def test_begin_only_succeeds_once_until_finish(self) -> None:
        session = NoteSession()

        assert session.begin()
        assert not session.begin()
        session.finish()
        assert session.begin()

    def test_prompt_and_credentials_are_frozen_while_busy(self) -> None:
        session = NoteSession(groq_api_key="gsk_1", mistral_api_key="mst_1")
        assert session.begin()

        for edit in (
            lambda: session.set_prompt("summary"),
            lambda: session.set_groq_api_key("gsk_2"),
            lambda: session.set_mistral_api_key("mst_2"),
        ):
            with pytest.raises(NoteError) as excinfo:
                edit()
            assert excinfo.value.status == 409

        assert session.prompt_key == "default"
        assert (session.groq_api_key, session.mistral_api_key) == ("gsk_1", "mst_1")

    def test_rejected_upload_while_busy_leaves_the_error_untouched(self) -> None:
        session = NoteSession()
        assert session.begin()

        with pytest.raises(NoteError) as excinfo:
            session.select_pdf(UploadedFile("notes.txt", "text/plain", b"hi"))

        assert excinfo.value.status == 409
        assert session.error is None


class TestCredentialStore:
    """Credentials are read once and written on every edit."""

    def test_store_reads_existing_keys(self, tmp_path: Path) -> None:
        env_file = tmp_path / "config.env"
        env_file.write_text('GROQ_API_KEY="gsk_1"\nOTHER=1\n')

        store = CredentialStore(env_file)

        assert store.get("GROQ_API_KEY") == "gsk_1"
        assert store.get("MISTRAL_API_KEY") == ""

    def test_session_edits_are_persisted(self, tmp_path: Path) -> None:
        env_file = tmp_path / "config.env"
        env_file.write_text("OTHER=1\n")
        session = NoteSession.from_store(CredentialStore(env_file))

        session.set_mistral_api_key("mst_2")
        session.set_groq_api_key("gsk_1")

        assert parse_env_file(env_file) == {
            "GROQ_API_KEY": "gsk_1",
            "MISTRAL_API_KEY": "mst_2",
            "OTHER": "1",
        }
        assert CredentialStore(env_file).get("MISTRAL_API_KEY") == "mst_2"

    def test_unknown_credential_name_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(KeyError):
            CredentialStore(tmp_path / "config.env").set("OPENAI_API_KEY", "x")


class TestSessionRegistry:
    """Tests for cookie-keyed sessions."""

    def test_sessions_are_seeded_from_the_store_and_reused(self, tmp_path: Path) -> None:
        env_file = tmp_path / "config.env"
        env_file.write_text('MISTRAL_API_KEY="mst_1"\n')
        registry = SessionRegistry(CredentialStore(env_file))

        session_id, session = registry.get_or_create(None)
        same_id, same = registry.get_or_create(session_id)
        other_id, other = registry.get_or_create("unknown")

        assert session.mistral_api_key == "mst_1"
        assert (same_id, same) == (session_id, session)
        assert same is session
        assert other_id != session_id
        assert other is not session

    def test_least_recently_used_session_is_evicted(self, tmp_path: Path) -> None:
        registry = SessionRegistry(CredentialStore(tmp_path / "config.env"), max_sessions=3)
        first_id, first = registry.get_or_create(None)
        second_id, _ = registry.get_or_create(None)
        registry.get_or_create(None)
        registry.get_or_create(first_id)

        registry.get_or_create(None)
        registry.get_or_create(None)

        assert len(registry) == 3
        assert registry.get_or_create(first_id)[1] is first
        assert registry.get_or_create(second_id)[0] != second_id

    def test_snapshot_never_exposes_raw_keys(self) -> None:
        session = NoteSession(groq_api_key="gsk_1234567890", selection=AudioInput(AUDIO))

        snapshot = session.snapshot()

        assert snapshot["activeInput"] == "audio"
        assert snapshot["fileName"] == "memo.mp3"
        assert snapshot["credentials"]["groq"] == {"set": True, "preview": "gsk_...7890"}
        assert snapshot["credentials"]["mistral"] == {"set": False, "preview": ""}
        assert "gsk_1234567890" not in str(snapshot)
