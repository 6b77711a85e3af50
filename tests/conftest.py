from __future__ import annotations

import pytest

from helpers import CONCEPTS, SPEC, FakeAI, FakeRasterizer, RecordedSleep, pipeline_script
from logoforge.models import Concept, DesignSpec, Selection
from logoforge.storage import MemoryFileStore


@pytest.fixture
def sleep():
    return RecordedSleep()


@pytest.fixture
def rasterizer():
    return FakeRasterizer()


@pytest.fixture
def store():
    return MemoryFileStore()


@pytest.fixture
def fake_ai():
    return FakeAI(pipeline_script())


@pytest.fixture
def spec():
    return DesignSpec(**SPEC, industry="food", industry_confidence=0.95)


@pytest.fixture
def concepts():
    return [Concept(**c) for c in CONCEPTS]


@pytest.fixture
def selection(concepts):
    return Selection(
        selected_concept=concepts[1],
        selected_index=1,
        rationale="The wheat monogram is the most distinctive and scales well.",
        score=87,
    )
