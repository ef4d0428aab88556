"""Tests for cmdtrader.engine.registry."""

import pytest

from cmdtrader.engine.registry import AlgoRegistry, SessionRegistry


class TestSessionRegistry:
    def test_find_all_and_by_tag(self):
        reg = SessionRegistry()
        reg.add("s1", "a", "o1")
        reg.add("s1", "b", "o2")
        reg.add("s1", "a", "o3")
        assert reg.find("s1") == ["o1", "o2", "o3"]
        assert reg.find("s1", "a") == ["o1", "o3"]
        assert reg.find("s1", "c") == []

    def test_unknown_session(self):
        reg = SessionRegistry()
        assert reg.find("nope") == []
        assert "nope" not in reg.sessions

    def test_empty_tag_is_a_tag(self):
        reg = SessionRegistry()
        reg.add("s1", "", "o1")
        reg.add("s1", "x", "o2")
        assert reg.find("s1", "") == ["o1"]


class TestAlgoRegistry:
    def test_lifecycle(self):
        reg = AlgoRegistry()
        algo = reg.start("buy", "s1", "twap")
        assert not reg.isCancelled(algo.id)

        reg.end(algo.id)
        assert algo.id not in reg.running
        assert reg.isCancelled(algo.id)

    def test_ids_are_unique(self):
        reg = AlgoRegistry()
        assert reg.start("buy", "s1", "").id != reg.start("buy", "s1", "").id

    @pytest.mark.parametrize(
        "which, tag, session, expected",
        [
            ("all", "", "zz", {"b1", "s1", "b2"}),
            ("buy", "", "zz", {"b1", "b2"}),
            ("sell", "", "zz", {"s1"}),
            ("session", "", "one", {"b1", "s1"}),
            ("tagged", "ice", "one", {"s1"}),
            ("tagged", "ice", "two", {"b2"}),
            ("tagged", "ice", "three", set()),
        ],
    )
    def test_cancel_matching(self, which, tag, session, expected):
        reg = AlgoRegistry()
        algos = {
            "b1": reg.start("buy", "one", "twap"),
            "s1": reg.start("sell", "one", "ice"),
            "b2": reg.start("buy", "two", "ice"),
        }

        assert reg.cancelMatching(which, tag, session) == len(expected)
        assert {k for k, a in algos.items() if reg.isCancelled(a.id)} == expected

    def test_already_cancelled_not_counted(self):
        reg = AlgoRegistry()
        reg.start("buy", "s1", "")
        assert reg.cancelMatching("all", "", "s1") == 1
        assert reg.cancelMatching("all", "", "s1") == 0
