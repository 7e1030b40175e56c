"""Shared fixtures for action recorder tests."""

import pytest

from factories import FakePrinter, FakeRenderer, capture, click, typed


@pytest.fixture
def sample_actions():
    return [
        click(0, 10, 20, id="submit", text="Submit", tag_name="BUTTON"),
        typed("hello", 1500),
        capture("<section id='screenshotArea'>x</section>", 4000),
    ]


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def fake_printer():
    return FakePrinter()
