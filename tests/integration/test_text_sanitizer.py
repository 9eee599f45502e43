import logging
import pytest

from core.text_sanitizer import normalize_quotes, strip_code_fences, preprocess_llm_response


def test_normalize_quotes():
    """Test smart quote normalization."""
    text = '“Tama na” sabi ng senador, ‘di ba’'
    normalized = normalize_quotes(text)

    assert '“' not in normalized
    assert '’' not in normalized
    assert normalized == '"Tama na" sabi ng senador, \'di ba\''


def test_strip_code_fences():
    """Test markdown fence removal."""
    fenced = '```json\n{"sentiment": "positive"}\n```'
    assert strip_code_fences(fenced) == '{"sentiment": "positive"}'

    bare = '```\n{"a": 1}```'
    assert strip_code_fences(bare) == '{"a": 1}'


def test_preprocess_llm_response_logs_changes(caplog):
    """Test that preprocessing logs when changes are made."""
    caplog.set_level(logging.INFO, logger="core.text_sanitizer")
    response = '```json\n{"summary": “Budget debate”}\n```'

    processed = preprocess_llm_response(response)

    assert processed == '{"summary": "Budget debate"}'
    assert "Cleaned markdown fences or smart quotes" in caplog.text


def test_preprocess_llm_response_no_changes_no_log(caplog):
    """Test that preprocessing doesn't log when no changes are made."""
    caplog.set_level(logging.INFO, logger="core.text_sanitizer")
    clean_response = '{"message": "Regular text"}'

    processed = preprocess_llm_response(clean_response)

    assert processed == clean_response
    assert "Cleaned markdown fences" not in caplog.text


@pytest.mark.parametrize("input_text,expected_chars", [
    ("“", '"'),
    ("”", '"'),
    ("„", '"'),
    ("‘", "'"),
    ("’", "'"),
])
def test_individual_quote_mappings(input_text, expected_chars):
    """Test each quote mapping individually."""
    assert normalize_quotes(input_text) == expected_chars


def test_empty_and_none_inputs():
    """Test handling of empty and None inputs."""
    assert normalize_quotes("") == ""
    assert normalize_quotes(None) is None
    assert strip_code_fences("") == ""
    assert preprocess_llm_response("") == ""
    assert preprocess_llm_response(None) is None
