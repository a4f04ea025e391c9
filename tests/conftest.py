"""
Pytest configuration and shared fixtures for StudyForge tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep tests from writing log files under logs/."""
    from src import verbose_logger
    logger = verbose_logger.init_logger(verbose=False, log_file=False)
    yield logger
    verbose_logger.logger = None


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Retry backoff must not slow the suite down."""
    from services import retry_service
    monkeypatch.setattr(retry_service.time, "sleep", lambda _seconds: None)


@pytest.fixture
def sample_config():
    """Minimal config for testing services."""
    return {
        "defaults": {
            "provider": "openai",
        },
        "providers": {},
        "generation": {
            "quiz_questions": 3,
            "flashcards": 4,
            "coding_exercises": 2,
        },
        "retry": {
            "max_retries": 1,
            "base_delay": 0.0,
        },
    }


@pytest.fixture
def make_client():
    """Build a mock OpenAI client whose chat completion returns `content`."""
    def _make(content="", side_effect=None):
        client = Mock()
        if side_effect is not None:
            client.chat.completions.create.side_effect = side_effect
        else:
            response = Mock()
            response.choices = [Mock(message=Mock(content=content), finish_reason="stop")]
            response.model_dump.return_value = {"choices": [{"message": {"content": content}}]}
            client.chat.completions.create.return_value = response
        return client
    return _make


@pytest.fixture
def lecture_text():
    return (
        "Photosynthesis converts light energy into chemical energy. "
        "Chlorophyll absorbs mostly blue and red light."
    )
