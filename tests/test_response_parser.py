"""
Tests for the tolerant JSON extraction applied to model output.
"""

import pytest

from pagelens.llm.errors import ProviderResponseError
from pagelens.llm.response_parser import extract_json, optional_text, parse_json_response, payload_shape
from pagelens.models.enrichment_models import TopEntity


def test_plain_json():
    assert extract_json('{"a": 1}') == {"a": 1}
    assert extract_json("[1, 2]") == [1, 2]


def test_markdown_fence():
    text = 'Here you go:\n```json\n{"summary": "ok"}\n```\nThanks!'
    assert extract_json(text) == {"summary": "ok"}


def test_bare_fence():
    assert extract_json('```\n[{"q": "x"}]\n```') == [{"q": "x"}]


def test_json_surrounded_by_prose():
    text = 'Sure! The result is {"claims": [{"statement": "a } b"}]} and that is all.'
    assert extract_json(text) == {"claims": [{"statement": "a } b"}]}


def test_array_before_object():
    assert extract_json('Answer: [{"a": 1}] then {"b": 2}') == [{"a": 1}]


def test_escaped_quotes_inside_strings():
    assert extract_json('x {"s": "say \\"hi\\" {"} y') == {"s": 'say "hi" {'}


def test_nothing_to_parse():
    assert extract_json("") is None
    assert extract_json("no json here") is None
    assert extract_json("{broken: json}") is None


def test_parse_json_response_raises():
    with pytest.raises(ProviderResponseError, match="FAQ generation"):
        parse_json_response("I cannot help with that.", "FAQ generation")


def test_optional_text():
    assert optional_text("  CloudMaster  ") == "CloudMaster"
    assert optional_text(49) == "49"
    assert optional_text("   ") is None
    assert optional_text(None) is None
    assert optional_text(True) is None
    assert optional_text({"section": "about"}) is None
    assert optional_text(["about"]) is None


def test_payload_shape_translates_validation_errors():
    with pytest.raises(ProviderResponseError, match="entity extraction"):
        with payload_shape("entity extraction"):
            TopEntity(name={"not": "text"})


def test_payload_shape_leaves_other_errors_alone():
    with pytest.raises(KeyError):
        with payload_shape("FAQ generation"):
            raise KeyError("question")
