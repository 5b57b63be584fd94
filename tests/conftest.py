import pytest

from fakes import RecordingGemini


@pytest.fixture
def gemini():
    return RecordingGemini()
