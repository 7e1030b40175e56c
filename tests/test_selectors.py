"""Tests for the injected recorder script."""

import re

import orjson

from recorder.selectors import REDACTED, recorder_script


class TestRecorderScript:
    """Tests for recorder_script."""

    def test_placeholders_substituted(self):
        """Test no template markers survive into the page."""
        script = recorder_script("#screenshotArea")

        assert "%REDACTED%" not in script
        assert "%CAPTURE_SELECTOR%" not in script
        assert 'document.querySelector(selector || "#screenshotArea")' in script

    def test_password_values_redacted(self):
        """Test password fields send the mask instead of their value."""
        script = recorder_script("body")

        assert REDACTED == "••••••"
        assert 'const REDACTED = "••••••";' in script
        assert re.search(r'=== "password"\) return REDACTED;', script)

    def test_selector_quotes_and_backslashes_escaped(self):
        """Test awkward selectors stay one valid string literal."""
        selector = 'div[data-name="a\\b"]'

        script = recorder_script(selector)

        literal = re.search(r"document\.querySelector\(selector \|\| (.+)\);", script).group(1)
        assert orjson.loads(literal) == selector

    def test_selector_newline_escaped(self):
        """Test a newline cannot break the generated statement."""
        script = recorder_script("main\n.content")

        line = next(l for l in script.splitlines() if "document.querySelector(" in l)
        literal = re.search(r"selector \|\| (.+)\);", line).group(1)
        assert orjson.loads(literal) == "main\n.content"
