import json

import pytest

from app.core.config import Settings
from app.tests.fakes import (
    COMPANY_RESULTS,
    INTERVIEWER_RESULTS,
    QUESTION_RESULTS,
    FakeSearchProvider,
    report_payload,
)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="",
        GROQ_API_KEY="",
        SYNTHESIS_MAX_RETRIES=1,
        UNSUPPORTED_CONFIDENCE_CAP=0.4,
        PIPELINE_TIMEOUT_MS=5000,
        EVIDENCE_CACHE_ENABLED=False,
    )


@pytest.fixture
def providers():
    return {
        "company": FakeSearchProvider(COMPANY_RESULTS),
        "questions": FakeSearchProvider(QUESTION_RESULTS),
        "interviewer": FakeSearchProvider(INTERVIEWER_RESULTS),
    }


@pytest.fixture
def valid_report_json() -> str:
    return json.dumps(report_payload())
