"""
Tests for GrammarFixSession: startup gate, download flow and task runs.

Backends and downloaders are test doubles or run against mocked HTTP;
nothing touches the network or loads a model.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import grammarfix.session as session_module
from grammarfix.ai.dispatcher import InferenceDispatcher
from grammarfix.ai.ollama_backend import OllamaBackend
from grammarfix.config import BACKEND_LOCAL, BACKEND_OLLAMA
from grammarfix.download_manager import ModelDownloader
from grammarfix.errors import DownloadCancelled, DownloadError, InferenceError
from grammarfix.model_state import AppPhase, ModelStateTracker
from grammarfix.platform_paths import create_model_directory
from grammarfix.session import GrammarFixSession

LOCAL_CONFIG = {
    'url': "https://example.com/model.gguf",
    'filename': "model.gguf",
    'approx_size_mb': 700,
    'model_id': "llama3.2:1b",
}
OLLAMA_CONFIG = {'model_id': "llama3.2:1b", 'approx_size_mb': 1300}


class FakeDownloader:
    """Writes a small file and reports two progress steps."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.cancel = MagicMock()
        self.reset = MagicMock()

    def download(self, url, destination, on_progress=None):
        self.calls.append((url, destination))
        if on_progress:
            on_progress(5, 10)
        if self.error:
            raise self.error
        Path(destination).write_bytes(b"GGUF")
        if on_progress:
            on_progress(10, 10)
        return destination


class EchoBackend:
    """Streams the user prompt back word by word."""

    name = "echo"

    def __init__(self, error=None, load_progress=()):
        self.error = error
        self.load_progress = load_progress
        self.requests = []

    def chat(self, request, on_response, on_load_progress=None):
        self.requests.append(request)
        for d, l in self.load_progress:
            on_load_progress(d, l)
        if self.error:
            raise self.error
        text = ""
        for word in request.user_prompt.split():
            text = f"{text} {word}".strip()
            on_response(text, False)
        on_response(text, True)
        return text

    def unload(self):
        pass


def make_session(backend_name, tmp_path, backend=None, downloader=None):
    snapshots = []
    tracker = ModelStateTracker(backend_name, listener=snapshots.append)
    session = GrammarFixSession(
        backend_name,
        tracker,
        InferenceDispatcher(backend or EchoBackend()),
        downloader=downloader or FakeDownloader(),
        model_config=LOCAL_CONFIG if backend_name == BACKEND_LOCAL else OLLAMA_CONFIG,
        models_dir=tmp_path,
    )
    return session, snapshots


class TestInitialize:

    def test_local_without_model_file(self, tmp_path):
        session, _ = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()
        s = session.snapshot
        assert s.phase == AppPhase.IDLE
        assert s.status_message == "Model not downloaded (~700 MB)"
        assert s.show_download_button

    def test_local_with_model_file(self, tmp_path):
        (tmp_path / "model.gguf").write_bytes(b"GGUF")
        session, snapshots = make_session(BACKEND_LOCAL, tmp_path)

        session.initialize()

        assert session.snapshot.is_model_ready
        assert session.snapshot.model_ref == str(tmp_path / "model.gguf")
        assert [s.status_message for s in snapshots] == ["Model ready. Initializing...", "Model ready!"]

    def test_ollama_ready_immediately(self, tmp_path):
        session, _ = make_session(BACKEND_OLLAMA, tmp_path)
        session.initialize()
        s = session.snapshot
        assert s.is_model_ready
        assert s.model_ref == "llama3.2:1b"
        assert s.status_message == "Ready! Model will download on first use (Ollama)"
        assert not s.show_download_button


class TestDownload:

    def test_download_then_ready(self, tmp_path):
        downloader = FakeDownloader()
        session, snapshots = make_session(BACKEND_LOCAL, tmp_path, downloader=downloader)
        session.initialize()

        assert session.download_model() is True

        assert downloader.calls == [("https://example.com/model.gguf", tmp_path / "model.gguf")]
        messages = [s.status_message for s in snapshots]
        assert messages[1:] == [
            "Downloading model...",
            "Downloading: 0.0 MB / 0.0 MB",
            "Downloading: 0.0 MB / 0.0 MB",
            "Download complete. Initializing model...",
            "Model ready!",
        ]
        assert [s.download_progress for s in snapshots if s.is_downloading][1:3] == [0.5, 1.0]
        assert session.snapshot.can_submit

    def test_download_failure(self, tmp_path):
        session, _ = make_session(BACKEND_LOCAL, tmp_path, downloader=FakeDownloader(DownloadError("HTTP 404")))
        session.initialize()

        assert session.download_model() is False

        s = session.snapshot
        assert s.status_message == "Download failed: HTTP 404"
        assert not s.is_model_ready
        assert s.show_download_button

    def test_download_cancelled(self, tmp_path):
        session, _ = make_session(BACKEND_LOCAL, tmp_path, downloader=FakeDownloader(DownloadCancelled("x")))
        session.initialize()

        assert session.download_model() is False
        assert session.snapshot.status_message == "Download failed: cancelled"

    def test_cancel_forwards_to_downloader(self, tmp_path):
        downloader = FakeDownloader()
        session, _ = make_session(BACKEND_LOCAL, tmp_path, downloader=downloader)
        session.cancel_download()
        downloader.cancel.assert_called_once()

    def test_ollama_has_nothing_to_download(self, tmp_path):
        downloader = FakeDownloader()
        session, _ = make_session(BACKEND_OLLAMA, tmp_path, downloader=downloader)
        assert session.download_model() is False
        assert downloader.calls == []


class TestRunTask:

    @pytest.fixture
    def ready_session(self, tmp_path):
        (tmp_path / "model.gguf").write_bytes(b"GGUF")
        session, snapshots = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()
        snapshots.clear()
        return session, snapshots

    def test_validate_request(self, tmp_path):
        session, _ = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()
        assert session.validate_request("hello") == "Model is not ready yet"

    def test_rejects_blank_text(self, ready_session):
        session, snapshots = ready_session
        assert session.run_task("fix-grammar", "   ") == "Please enter some text"
        assert snapshots == []

    def test_rejects_overlong_text(self, ready_session):
        session, _ = ready_session
        assert session.run_task("fix-grammar", "a" * 9000).startswith("Text is too long")

    def test_streams_into_output(self, ready_session):
        session, snapshots = ready_session

        assert session.run_task("fix-grammar", "i has apple") is None

        outputs = [s.output_text for s in snapshots]
        assert outputs[0] == "Processing..."
        assert outputs[1] == "Correct"
        assert outputs[-1] == "Correct the following text: i has apple"
        assert snapshots[0].is_processing
        assert not session.snapshot.is_processing
        assert session.snapshot.can_submit
        assert session.last_stats.task_id == "fix-grammar"

    def test_request_uses_model_path_and_task_sampling(self, tmp_path):
        (tmp_path / "model.gguf").write_bytes(b"GGUF")
        backend = EchoBackend()
        session, _ = make_session(BACKEND_LOCAL, tmp_path, backend=backend)
        session.initialize()

        session.run_task("rewrite", "hello")

        request = backend.requests[0]
        assert request.model_ref == str(tmp_path / "model.gguf")
        assert request.temperature == 0.7
        assert request.task_id == "rewrite"

    def test_tone_is_forwarded(self, tmp_path):
        backend = EchoBackend()
        session, _ = make_session(BACKEND_OLLAMA, tmp_path, backend=backend)
        session.initialize()

        session.run_task("adjust-tone", "send it", tone="concise")

        assert "concise tone" in backend.requests[0].user_prompt

    def test_failure_reported_in_output(self, tmp_path):
        session, _ = make_session(BACKEND_OLLAMA, tmp_path, backend=EchoBackend(error=InferenceError("Ollama not available")))
        session.initialize()

        assert session.run_task("fix-grammar", "hello") is None

        s = session.snapshot
        assert s.output_text == "Error: Ollama not available"
        assert not s.is_processing
        assert s.can_submit

    def test_first_use_load_progress(self, tmp_path):
        backend = EchoBackend(load_progress=[(0.0, 0.0), (0.5, 0.0), (1.0, 0.0), (1.0, 1.0)])
        session, snapshots = make_session(BACKEND_OLLAMA, tmp_path, backend=backend)
        session.initialize()
        snapshots.clear()

        session.run_task("fix-grammar", "hello")

        messages = [s.status_message for s in snapshots]
        assert messages[:5] == [
            "Initializing...",
            "Downloading model: 0%",
            "Downloading model: 50%",
            "Loading model into memory: 0%",
            "Model ready! (Ollama)",
        ]
        assert session.snapshot.status_message == "Model ready! (Ollama)"

    def test_already_pulled_model_is_not_announced_as_download(self, tmp_path):
        tags = MagicMock(status_code=200)
        tags.json.return_value = {'models': [{'name': "llama3.2:1b", 'size': 1}]}
        chat = MagicMock(status_code=200)
        chat.__enter__.return_value = chat
        chat.__exit__.return_value = False
        chat.iter_lines.return_value = iter([
            b'{"message": {"content": "Hi."}, "done": false}',
            b'{"message": {"content": ""}, "done": true}',
        ])

        def post(url, **kwargs):
            if url.endswith("/api/generate"):
                return MagicMock(status_code=200, text="")
            if url.endswith("/api/chat"):
                return chat
            raise AssertionError(f"unexpected POST {url}")

        session, snapshots = make_session(BACKEND_OLLAMA, tmp_path, backend=OllamaBackend())
        session.initialize()
        snapshots.clear()

        with patch("grammarfix.ai.ollama_backend.requests.get", return_value=tags), \
                patch("grammarfix.ai.ollama_backend.requests.post", side_effect=post):
            assert session.run_task("fix-grammar", "hi") is None

        messages = [s.status_message for s in snapshots]
        assert not any(m.startswith("Downloading model") for m in messages)
        assert messages[:3] == [
            "Initializing...",
            "Loading model into memory: 0%",
            "Model ready! (Ollama)",
        ]
        assert session.snapshot.output_text == "Hi."


class TestModelPaths:
    """The session takes model references and directories from platform_paths."""

    @pytest.fixture
    def fake_reference(self, monkeypatch):
        monkeypatch.setattr(
            session_module,
            "resolve_model_reference",
            lambda backend, config, models_dir=None: f"resolved:{backend}",
        )

    def test_ollama_reference(self, tmp_path, fake_reference):
        session, _ = make_session(BACKEND_OLLAMA, tmp_path)
        session.initialize()
        assert session.snapshot.model_ref == "resolved:ollama"

    def test_local_reference_for_existing_file(self, tmp_path, fake_reference):
        (tmp_path / "model.gguf").write_bytes(b"GGUF")
        session, _ = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()
        assert session.snapshot.model_ref == "resolved:local"

    def test_local_reference_after_download(self, tmp_path, fake_reference):
        session, _ = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()
        session.download_model()
        assert session.snapshot.model_ref == "resolved:local"

    def test_download_creates_model_directory(self, tmp_path, monkeypatch):
        create_dir = MagicMock(wraps=create_model_directory)
        monkeypatch.setattr(session_module, "create_model_directory", create_dir)
        session, _ = make_session(BACKEND_LOCAL, tmp_path)
        session.initialize()

        session.download_model()

        create_dir.assert_called_once_with(tmp_path / "model.gguf", BACKEND_LOCAL)


def http_session(chunks, content_length):
    """Mock requests.Session streaming the given chunks."""
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    response.headers = {'Content-Length': str(content_length)}
    response.iter_content.return_value = iter(chunks)
    http = MagicMock()
    http.get.return_value = response
    return http


class TestCancelTiming:

    def test_cancel_right_after_download_starts(self, tmp_path):
        downloader = ModelDownloader(session=http_session([b"GG", b"UF"], 4))
        session, _ = make_session(BACKEND_LOCAL, tmp_path, downloader=downloader)
        session.initialize()

        def cancel_on_start(snapshot):
            if snapshot.status_message == "Downloading model...":
                session.cancel_download()

        session.tracker.listener = cancel_on_start

        assert session.download_model() is False
        assert session.snapshot.status_message == "Download failed: cancelled"
        assert not (tmp_path / "model.gguf").exists()

    def test_previous_cancel_does_not_block_next_download(self, tmp_path):
        downloader = ModelDownloader(session=http_session([b"GG", b"UF"], 4))
        session, _ = make_session(BACKEND_LOCAL, tmp_path, downloader=downloader)
        session.initialize()
        session.cancel_download()

        assert session.download_model() is True
        assert (tmp_path / "model.gguf").read_bytes() == b"GGUF"
