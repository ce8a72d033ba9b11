import json
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def goal_full_path() -> Path:
    return FIXTURES / "goal-full.json"


@pytest.fixture
def goal_full(goal_full_path):
    return json.loads(goal_full_path.read_text(encoding="utf-8"))
