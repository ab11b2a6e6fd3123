import pytest

from modules.request_compiler.extraction import extract_json_object, find_json_object
from shared.errors import InvalidJsonError, NoJsonFoundError, UnbalancedJsonError


def test_extracts_object_surrounded_by_rationale():
    text = 'I pick Veo because it has audio.\n{"model": "veo", "nested": {"a": 1}}\nDone.'

    assert extract_json_object(text) == {"model": "veo", "nested": {"a": 1}}


def test_braces_inside_strings_are_ignored():
    text = '{"prompt": "draw a } and a { and \\"quotes\\""} trailing {'

    assert extract_json_object(text)["prompt"] == 'draw a } and a { and "quotes"'


def test_first_object_wins():
    assert find_json_object('{"a": 1} {"b": 2}') == '{"a": 1}'


def test_no_json():
    with pytest.raises(NoJsonFoundError, match="No JSON found"):
        extract_json_object("I could not decide.")


def test_unbalanced():
    with pytest.raises(UnbalancedJsonError, match="Unbalanced braces"):
        extract_json_object('Here: {"model": "veo", "x": {"y": 1}')


def test_invalid_json():
    with pytest.raises(InvalidJsonError):
        extract_json_object("{model: veo}")
