import pytest

from flashdeck.application.algorithm import ReviewAlgorithm
from flashdeck.application.config import AlgorithmConfig
from flashdeck.application.scheduler import Scheduler
from flashdeck.domain.models import Item
from flashdeck.infrastructure.adapters.memory_store import MemoryItemStore

NOW_S = 1_700_000_000.0
NOW_MS = int(NOW_S * 1000)
DAY_MS = 86_400_000


class FixedRandom:
    """Deterministic stand-in for random.Random."""

    def __init__(self, value: float = 0.5):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value

    def choice(self, seq):
        self.calls += 1
        return seq[0]


class FailingChoice:
    """Random source that must not be consulted."""

    def choice(self, seq):
        raise AssertionError("unshown tier should not be reached")


@pytest.fixture
def clock():
    return lambda: NOW_S


@pytest.fixture
def fixed_rng():
    return FixedRandom(0.5)


@pytest.fixture
def algorithm(clock, fixed_rng):
    return ReviewAlgorithm(config=AlgorithmConfig(), rng=fixed_rng, clock=clock)


@pytest.fixture
def plain_algorithm(clock):
    """Algorithm with the load balancer disabled."""
    return ReviewAlgorithm(
        config=AlgorithmConfig(enable_load_balancer=False), rng=FixedRandom(), clock=clock
    )


@pytest.fixture
def items():
    return [
        Item(id="fc-1", question="Q1", answer="A1", tags=frozenset({"math"})),
        Item(id="fc-2", question="Q2", answer="A2"),
        Item(id="fc-3", question="Q3", answer="A3"),
    ]


@pytest.fixture
def store(items):
    return MemoryItemStore(items=items)


@pytest.fixture
def scheduler(store, algorithm):
    return Scheduler(store=store, algorithm=algorithm, rng=FixedRandom())


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and progress files
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "FLASHDECK_CATALOG_PATH",
        "FLASHDECK_PROGRESS_PATH",
        "FLASHDECK_BACKEND",
        "FLASHDECK_SEED",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def rng_factory():
    return FixedRandom


@pytest.fixture
def failing_choice():
    return FailingChoice()


@pytest.fixture
def now_ms():
    return NOW_MS
