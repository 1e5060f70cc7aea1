from __future__ import annotations

from invoify.client.passengers import PassengerRowSync, reconcile_passenger_rows
from invoify.models import LineItem


def _rows(count: int) -> list[LineItem]:
    return [LineItem(name=f"row {i}") for i in range(count)]


def test_grows_with_blank_rows() -> None:
    rows = reconcile_passenger_rows(_rows(1), 3)
    assert len(rows) == 3
    assert rows[0].name == "row 0"
    assert rows[2].name == ""
    assert rows[2].quantity == 1


def test_trims_from_the_end() -> None:
    rows = reconcile_passenger_rows(_rows(4), 2)
    assert [r.name for r in rows] == ["row 0", "row 1"]


def test_non_positive_target_leaves_rows() -> None:
    original = _rows(3)
    assert len(reconcile_passenger_rows(original, 0)) == 3
    assert len(reconcile_passenger_rows(original, -2)) == 3
    assert len(reconcile_passenger_rows(original, None)) == 3


def test_never_trims_below_one_row() -> None:
    assert len(reconcile_passenger_rows(_rows(2), 1)) == 1
    assert len(reconcile_passenger_rows([], 1)) == 1


def test_reducer_does_not_mutate_input() -> None:
    original = _rows(2)
    reconcile_passenger_rows(original, 5)
    assert len(original) == 2


def test_latch_suppresses_nested_updates() -> None:
    state = {"rows": _rows(1)}
    calls: list[int] = []

    def on_rows(rows: list[LineItem]) -> None:
        calls.append(len(rows))
        state["rows"] = rows
        # Changing the rows re-triggers the passenger watcher.
        assert sync.is_updating
        assert sync.apply(state["rows"], len(rows) + 1) is False

    sync = PassengerRowSync(on_rows)
    assert sync.apply(state["rows"], 3) is True
    assert calls == [3]
    assert len(state["rows"]) == 3
    assert not sync.is_updating


def test_matching_row_count_is_ignored() -> None:
    calls: list[int] = []
    sync = PassengerRowSync(lambda rows: calls.append(len(rows)))
    assert sync.apply(_rows(2), 2) is False
    assert calls == []


def test_same_target_reapplies_after_rows_reset() -> None:
    state = {"rows": _rows(1)}

    def on_rows(rows: list[LineItem]) -> None:
        state["rows"] = rows

    sync = PassengerRowSync(on_rows)
    assert sync.apply(state["rows"], 3) is True
    assert sync.apply(state["rows"], 3) is False

    state["rows"] = _rows(1)
    assert sync.apply(state["rows"], 3) is True
    assert len(state["rows"]) == 3
