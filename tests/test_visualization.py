from compression.target_size import (
    PHASE_FLOOR,
    PHASE_PRECHECK,
    PHASE_SEARCH,
    PHASE_SINGLE,
    Attempt,
)
from utils.visualization import PHASE_COLORS, create_size_comparison, plot_search_trace


def test_search_trace_groups_attempts_by_phase() -> None:
    attempts = [
        Attempt(PHASE_PRECHECK, 0.9, 900_000),
        Attempt(PHASE_FLOOR, 0.1, 100_000),
        Attempt(PHASE_SEARCH, 0.55, 550_000),
        Attempt(PHASE_SEARCH, 0.32, 320_000),
    ]
    fig = plot_search_trace(attempts, 500_000)

    names = [trace.name for trace in fig.data if trace.name]
    assert names == ["Precheck", "Floor", "Search"]
    search_trace = [t for t in fig.data if t.name == "Search"][0]
    assert list(search_trace.x) == [3, 4]


def test_size_comparison_has_one_bar_per_entry() -> None:
    fig = create_size_comparison([("Original", 2048), ("Result", 1024)])
    assert list(fig.data[0].x) == ["Original", "Result"]
    assert list(fig.data[0].y) == [2.0, 1.0]


def test_every_attempt_phase_has_a_color() -> None:
    assert set(PHASE_COLORS) == {PHASE_SINGLE, PHASE_PRECHECK, PHASE_FLOOR, PHASE_SEARCH}
