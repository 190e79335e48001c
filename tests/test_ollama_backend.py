"""
Tests for OllamaBackend.

requests.get/post are patched in the backend module; responses replay the
JSON lines Ollama streams.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from grammarfix.ai.ollama_backend import OllamaBackend
from grammarfix.errors import InferenceError

MODULE = "grammarfix.ai.ollama_backend.requests"


def json_lines(*events):
    return [json.dumps(e).encode() for e in events]


def streaming_response(lines, status_code=200):
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    response.status_code = status_code
    response.text = "error body"
    response.iter_lines.return_value = iter(lines)
    return response


def tags_response(*names):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {'models': [{'name': n, 'size': 1300 * 1024 * 1024} for n in names]}
    return response


def chat_lines(*deltas):
    events = [{"message": {"role": "assistant", "content": d}, "done": False} for d in deltas]
    events.append({"message": {"role": "assistant", "content": ""}, "done": True, "eval_count": 12})
    return json_lines(*events)


def make_post(chat=None, pull=None, generate_status=200):
    """requests.post replacement routing by endpoint."""
    def post(url, **kwargs):
        if url.endswith("/api/chat"):
            return streaming_response(chat or chat_lines("ok"))
        if url.endswith("/api/pull"):
            return streaming_response(pull or json_lines({"status": "success"}))
        if url.endswith("/api/generate"):
            return MagicMock(status_code=generate_status, text="")
        raise AssertionError(f"unexpected POST {url}")
    return MagicMock(side_effect=post)


class TestConnection:

    def test_connected(self):
        backend = OllamaBackend(api_base="http://localhost:11434/")
        with patch(f"{MODULE}.get", return_value=tags_response()) as mock_get:
            assert backend._check_connection() is True
        mock_get.assert_called_with("http://localhost:11434/api/tags", timeout=5)

    def test_not_running(self):
        backend = OllamaBackend()
        with patch(f"{MODULE}.get", side_effect=requests.exceptions.ConnectionError()):
            assert backend._check_connection() is False
            assert backend.get_available_models() == {}

    def test_available_models(self):
        backend = OllamaBackend()
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b", "qwen2.5:0.5b")):
            models = backend.get_available_models()
        assert set(models) == {"llama3.2:1b", "qwen2.5:0.5b"}
        assert models["llama3.2:1b"] == 1300 * 1024 * 1024


class TestEnsureModel:
    """First-use pull and load with (download, loading) progress."""

    def test_pulls_missing_model(self):
        backend = OllamaBackend()
        pull = json_lines(
            {"status": "pulling manifest"},
            {"status": "pulling a", "digest": "a", "total": 100, "completed": 50},
            {"status": "pulling b", "digest": "b", "total": 100, "completed": 0},
            {"status": "pulling b", "digest": "b", "total": 100, "completed": 100},
            {"status": "success"},
        )
        progress = []
        with patch(f"{MODULE}.get", return_value=tags_response()), \
                patch(f"{MODULE}.post", make_post(pull=pull)):
            backend.ensure_model("llama3.2:1b", lambda d, l: progress.append((d, l)))

        assert progress == [
            (0.0, 0.0),
            (0.5, 0.0),
            (0.25, 0.0),
            (0.75, 0.0),
            (1.0, 0.0),
            (1.0, 0.0),
            (1.0, 1.0),
        ]

    def test_existing_model_skips_pull(self):
        backend = OllamaBackend()
        post = make_post()
        progress = []
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", post):
            backend.ensure_model("llama3.2:1b", lambda d, l: progress.append((d, l)))

        urls = [c.args[0] for c in post.call_args_list]
        assert not any(u.endswith("/api/pull") for u in urls)
        assert progress == [(1.0, 0.0), (1.0, 1.0)]

    def test_loaded_once(self):
        backend = OllamaBackend()
        post = make_post()
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", post):
            backend.ensure_model("llama3.2:1b")
            backend.ensure_model("llama3.2:1b")
        assert post.call_count == 1

    def test_ollama_not_running(self):
        backend = OllamaBackend()
        with patch(f"{MODULE}.get", side_effect=requests.exceptions.ConnectionError()):
            with pytest.raises(InferenceError, match="Ollama not available"):
                backend.ensure_model("llama3.2:1b")

    def test_pull_error_line(self):
        backend = OllamaBackend()
        pull = json_lines({"error": "pull model manifest: file does not exist"})
        with patch(f"{MODULE}.get", return_value=tags_response()), \
                patch(f"{MODULE}.post", make_post(pull=pull)):
            with pytest.raises(InferenceError, match="file does not exist"):
                backend.ensure_model("nope:1b")

    def test_load_failure(self):
        backend = OllamaBackend()
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", make_post(generate_status=500)):
            with pytest.raises(InferenceError, match="500"):
                backend.ensure_model("llama3.2:1b")
        assert "llama3.2:1b" not in backend._loaded_models


class TestChat:

    def test_streams_cumulative_text(self, chat_request):
        backend = OllamaBackend()
        calls = []
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", make_post(chat=chat_lines("I have", " an", " apple. "))):
            result = backend.chat(chat_request, lambda text, done: calls.append((text, done)))

        assert result == "I have an apple."
        assert calls == [
            ("I have", False),
            ("I have an", False),
            ("I have an apple.", False),
            ("I have an apple.", True),
        ]

    def test_payload(self, chat_request):
        backend = OllamaBackend()
        post = make_post()
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", post):
            backend.chat(chat_request, lambda text, done: None)

        chat_call = next(c for c in post.call_args_list if c.args[0].endswith("/api/chat"))
        payload = chat_call.kwargs['json']
        assert payload['model'] == "llama3.2:1b"
        assert payload['messages'] == chat_request.to_messages()
        assert payload['stream'] is True
        assert payload['options']['temperature'] == 0.1
        assert payload['options']['top_p'] == 0.95
        assert payload['options']['num_predict'] == 256

    def test_error_line(self, chat_request):
        backend = OllamaBackend()
        with patch(f"{MODULE}.get", return_value=tags_response("llama3.2:1b")), \
                patch(f"{MODULE}.post", make_post(chat=json_lines({"error": "model crashed"}))):
            with pytest.raises(InferenceError, match="model crashed"):
                backend.chat(chat_request, lambda text, done: None)

    def test_timeout(self, chat_request):
        backend = OllamaBackend()
        backend._loaded_models.add("llama3.2:1b")
        with patch(f"{MODULE}.post", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(InferenceError, match="timeout"):
                backend.chat(chat_request, lambda text, done: None)

    def test_unload_forgets_models(self):
        backend = OllamaBackend()
        backend._loaded_models.add("llama3.2:1b")
        backend.unload()
        assert backend._loaded_models == set()
