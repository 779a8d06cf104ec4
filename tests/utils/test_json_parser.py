from community_calendar.utils.json_parser import (
    extract_events_payload,
    extract_json_from_llm_response,
)


def test_plain_and_fenced_json():
    assert extract_json_from_llm_response('{"events": []}') == {"events": []}
    assert extract_json_from_llm_response('```json\n{"a": 1}\n```') == {"a": 1}


def test_surrounding_prose_is_ignored():
    assert extract_json_from_llm_response('Here you go: {"a": [1, 2]} Hope this helps!') == {"a": [1, 2]}


def test_nothing_parseable():
    assert extract_json_from_llm_response("") is None
    assert extract_json_from_llm_response("no json here") is None
    assert extract_json_from_llm_response("{broken") is None


def test_events_payload_wraps_bare_arrays():
    assert extract_events_payload('[{"title": "x"}]') == {"events": [{"title": "x"}]}
    assert extract_events_payload('{"events": [{"title": "x"}]}') == {"events": [{"title": "x"}]}
    assert extract_events_payload('"just a string"') is None
