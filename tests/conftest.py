import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_SCRATCH = tempfile.mkdtemp(prefix="interview-tests-")
os.environ.setdefault("ENABLE_FILE_LOGS", "0")
os.environ.setdefault("DB_PATH", os.path.join(_SCRATCH, "import.db"))
os.environ.setdefault("TRANSCRIPTS_DIR", os.path.join(_SCRATCH, "transcripts"))

from config.interview import InterviewPlan
from config.settings import settings
from interview.flow import InterviewEngine
from interview.models import AnswerEvaluation, CodingEvaluation
from oracle.contracts import CodingProblem, GeneratedMCQ
from storage.migrate import migrate


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "TRANSCRIPTS_DIR", os.path.join(td.name, "transcripts"), raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def tick(self, ms: int) -> None:
        self.current += timedelta(milliseconds=ms)


class FakeOracle:
    """Scripted oracle; queue qualities or name methods in ``failing`` to make them raise."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failing: set = set()
        self.qualities: List[int] = []
        self.default_quality = 7
        self.concepts: List[str] = ["closures"]
        self.mcq = GeneratedMCQ(
            question="Which hook runs after every render?",
            options=["A) useMemo", "B) useEffect", "C) useRef", "D) useId"],
            correct_key="B",
            topic="react hooks",
        )
        self.coding = CodingProblem(
            problem="Reverse a linked list.",
            example_input="1->2->3",
            example_output="3->2->1",
            topic="linked lists",
        )
        self.code_quality = 8
        self.logic = "high"

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def generate_question(self, role, slot_number, difficulty, covered_topics):
        self._record("generate_question", role, slot_number, difficulty, list(covered_topics))
        return f"Question {slot_number} for {role}?"

    def generate_follow_up(self, original_question, answer, depth):
        self._record("generate_follow_up", original_question, answer, depth)
        return f"Follow-up {depth}?"

    def evaluate_answer(self, question, answer, difficulty):
        self._record("evaluate_answer", question, answer, difficulty)
        quality = self.qualities.pop(0) if self.qualities else self.default_quality
        return AnswerEvaluation(
            quality=quality,
            concept_coverage=list(self.concepts),
            confidence=0.8,
            clarity="high",
            feedback="Solid.",
        )

    def generate_mcq(self, role, difficulty, covered_topics):
        self._record("generate_mcq", role, difficulty, list(covered_topics))
        return self.mcq

    def generate_mcq_follow_up(self, question, selected_option, correct_key):
        self._record("generate_mcq_follow_up", question, selected_option, correct_key)
        return "Why that option?"

    def generate_coding_question(self, role, difficulty):
        self._record("generate_coding_question", role, difficulty)
        return self.coding

    def generate_coding_interruption(self, partial_code, problem):
        self._record("generate_coding_interruption", partial_code, problem)
        return "Why iterate instead of recurse?"

    def evaluate_coding_answer(self, problem, code, explanation, difficulty):
        self._record("evaluate_coding_answer", problem, code, explanation, difficulty)
        return CodingEvaluation(
            code_quality=self.code_quality,
            logic_understanding=self.logic,
            explanation_alignment=0.9,
            feedback="Clean.",
        )


class RecordingArchive:
    def __init__(self) -> None:
        self.saved: Dict[str, Dict[str, Any]] = {}

    def save(self, session, transcript) -> str:
        self.saved[session.id] = transcript.model_dump(mode="json")
        return f"memory://{session.id}"

    def load(self, session_id):
        return self.saved.get(session_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def archive():
    return RecordingArchive()


@pytest.fixture
def short_plan():
    return InterviewPlan(slot_types=["spoken", "mcq", "coding"], difficulties=["easy", "medium", "hard"])


@pytest.fixture
def engine(fake_oracle, clock, archive):
    return InterviewEngine(fake_oracle, archive=archive, now=clock)


@pytest.fixture
def short_engine(fake_oracle, clock, archive, short_plan):
    return InterviewEngine(fake_oracle, plan=short_plan, archive=archive, now=clock)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeHttpClient:
    def __init__(self) -> None:
        self.responses: List[FakeResponse] = []
        self.requests: List[Dict[str, Any]] = []

    def reply(self, content: str, status_code: int = 200) -> "FakeHttpClient":
        self.responses.append(FakeResponse(status_code, {"choices": [{"message": {"content": content}}]}))
        return self

    def fail(self, status_code: int) -> "FakeHttpClient":
        self.responses.append(FakeResponse(status_code, None, "upstream error"))
        return self

    def post(self, url, *, json, headers, timeout):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if not self.responses:
            raise ConnectionError("no scripted response")
        return self.responses.pop(0)


@pytest.fixture
def http_client():
    return FakeHttpClient()
