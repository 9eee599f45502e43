import json
from types import SimpleNamespace

import pytest

from core.exceptions import ClassifierResponseError, TerminalClassifierError, TransientClassifierError
from integrations.openai_client import OpenAIClassifier


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def _client(response=None, error=None):
    completions = FakeCompletions(response, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _response(content, finish_reason="stop"):
    message = SimpleNamespace(content=content)
    usage = SimpleNamespace(prompt_tokens=120, completion_tokens=40, total_tokens=160)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)], usage=usage)


def test_submit_sends_structured_request_and_parses_json():
    """Test the request uses the sentiment schema and returns the parsed object."""
    payload = {"sentiment": "positive", "sentiment_score": 0.7, "key_topics": ["jobs"], "summary": "Upbeat"}
    client, completions = _client(_response(json.dumps(payload)))
    classifier = OpenAIClassifier(client=client)

    result = classifier.submit("New jobs program announced")

    assert result == payload
    request = completions.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["temperature"] == 0.3
    assert request["max_tokens"] == 500
    assert request["response_format"]["type"] == "json_schema"
    assert request["response_format"]["json_schema"]["strict"] is True
    assert "New jobs program announced" in request["messages"][1]["content"]


def test_submit_strips_code_fences():
    """Test fenced JSON is cleaned before parsing."""
    client, _ = _client(_response('```json\n{"sentiment": "neutral", "sentiment_score": 0}\n```'))

    result = OpenAIClassifier(client=client).submit("text")

    assert result["sentiment"] == "neutral"


def test_truncated_response_raises_response_error():
    """Test a length-truncated completion is rejected."""
    client, _ = _client(_response('{"sentiment": "posi', finish_reason="length"))

    with pytest.raises(ClassifierResponseError):
        OpenAIClassifier(client=client).submit("text")


@pytest.mark.parametrize("content", ["not json", "[1, 2]"])
def test_invalid_content_raises_response_error(content):
    """Test unparseable or non-object content is a response error."""
    client, _ = _client(_response(content))

    with pytest.raises(ClassifierResponseError):
        OpenAIClassifier(client=client).submit("text")


def test_empty_choices_raise_response_error():
    """Test a response without choices is rejected."""
    client, _ = _client(SimpleNamespace(choices=[], usage=None))

    with pytest.raises(ClassifierResponseError):
        OpenAIClassifier(client=client).submit("text")


def test_terminal_marker_maps_to_terminal_error():
    """Test invalid key messages become terminal errors."""
    client, _ = _client(error=RuntimeError("Error code: 401 - Invalid API key provided"))

    with pytest.raises(TerminalClassifierError) as exc_info:
        OpenAIClassifier(client=client).submit("text")

    assert exc_info.value.reason == "Invalid API key"


def test_other_errors_map_to_transient_error():
    """Test generic API failures are transient."""
    client, _ = _client(error=ConnectionError("connection reset"))

    with pytest.raises(TransientClassifierError):
        OpenAIClassifier(client=client).submit("text")


def test_missing_api_key_is_rejected():
    """Test constructing without a key or client fails."""
    with pytest.raises(ValueError):
        OpenAIClassifier(api_key=None)
