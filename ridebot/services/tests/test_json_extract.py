"""Tests for lenient JSON extraction from model replies."""

from ridebot.services.json_extract import extract_json_object


class TestExtractJsonObject:
    """Test cases for extract_json_object."""

    def test_plain_object(self):
        assert extract_json_object('{"intent": "search"}') == {"intent": "search"}

    def test_fenced_block(self):
        """Markdown code fences are unwrapped."""
        text = 'Here you go:\n```json\n{"intent": "search", "radius": 20}\n```\nHope that helps!'
        assert extract_json_object(text) == {"intent": "search", "radius": 20}

    def test_fence_without_language(self):
        text = '```\n{"community": "straede"}\n```'
        assert extract_json_object(text) == {"community": "straede"}

    def test_leading_and_trailing_prose(self):
        """Prose around the object is ignored."""
        text = 'Sure! {"location": {"name": "Leipzig"}} Let me know if you need more.'
        assert extract_json_object(text) == {"location": {"name": "Leipzig"}}

    def test_stray_brace_before_payload(self):
        """An undecodable brace is skipped in favour of the next object."""
        text = 'Using {placeholders} here: {"intent": "help"}'
        assert extract_json_object(text) == {"intent": "help"}

    def test_first_object_wins(self):
        text = '{"intent": "search"} {"intent": "help"}'
        assert extract_json_object(text) == {"intent": "search"}

    def test_no_object(self):
        assert extract_json_object("I could not understand that query.") is None

    def test_array_is_not_an_object(self):
        assert extract_json_object('["search"]') is None

    def test_truncated_object(self):
        assert extract_json_object('{"intent": "search", "location": {') is None

    def test_empty_and_none(self):
        assert extract_json_object("") is None
        assert extract_json_object(None) is None
