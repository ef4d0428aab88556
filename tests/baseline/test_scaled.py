"""Tests for easing curves and the scaled amount/price generators."""

import random

import pytest

from cmdtrader.engine.easing import EASINGS, ease
from cmdtrader.engine.scaled import scaled_amounts, scaled_prices


class TestEase:
    def test_linear(self):
        assert ease(0, 10, 0, "linear") == 0
        assert ease(0, 10, 1, "linear") == 10
        assert ease(0, 10, 0.2, "linear") == 2
        assert ease(0, 10, 0.1, "linear") == 1

    def test_ease_in(self):
        assert ease(0, 10, 0, "ease-in") == 0
        assert ease(0, 10, 1, "ease-in") == 10
        assert ease(0, 10, 0.25, "ease-in") == 0.625
        assert ease(0, 10, 0.5, "ease-in") == 2.5
        assert ease(0, 10, 0.75, "ease-in") == 5.625
        assert ease(0, 10, 0.9, "ease-in") == 8.1

    def test_ease_out(self):
        assert ease(0, 10, 0, "ease-out") == 0
        assert ease(0, 10, 1, "ease-out") == 10
        assert ease(0, 10, 0.25, "ease-out") == 4.375
        assert ease(0, 10, 0.5, "ease-out") == 7.5
        assert ease(0, 10, 0.75, "ease-out") == 9.375
        assert ease(0, 10, 0.9, "ease-out") == 9.9

    def test_ease_in_out(self):
        assert ease(0, 10, 0, "ease-in-out") == 0
        assert ease(0, 10, 1, "ease-in-out") == 10
        assert ease(0, 10, 0.25, "ease-in-out") == 1.25
        assert ease(0, 10, 0.5, "ease-in-out") == 5
        assert ease(0, 10, 0.75, "ease-in-out") == 8.75
        assert ease(0, 10, 0.95, "ease-in-out") == 9.95

    def test_unknown_kind_is_linear(self):
        assert ease(0, 10, 0.3, "bouncy") == ease(0, 10, 0.3, "linear")

    def test_descending_range(self):
        assert ease(100, 50, 0.5, "linear") == 75

    def test_progress_clamped(self):
        assert ease(0, 10, 1.5) == 10
        assert ease(0, 10, -1) == 0

    def test_known_kinds(self):
        assert set(EASINGS) == {"linear", "ease-in", "ease-out", "ease-in-out"}


class TestScaledAmounts:
    def test_no_orders(self):
        assert scaled_amounts(0, 10, 0) == []

    def test_even_split(self):
        assert scaled_amounts(5, 10, 0) == [2, 2, 2, 2, 2]
        assert scaled_amounts(5, 2, 0) == [0.4, 0.4, 0.4, 0.4, 0.4]

    def test_random_diff_clamped_and_positive(self):
        amounts = scaled_amounts(4, 10, 2, rng=random.Random(7))
        assert min(amounts) > 0

    def test_jitter_keeps_total(self):
        amounts = scaled_amounts(5, 10, 0.1, rng=random.Random(1))
        assert round(sum(amounts), 4) == 10
        assert min(amounts) < 2
        assert max(amounts) > 2

    def test_precision(self):
        amounts = scaled_amounts(3, 10, 0, precision=2)
        assert amounts == [3.33, 3.33, 3.34]


class TestScaledPrices:
    def test_linear_default(self):
        assert scaled_prices(5, 1000, 1100) == [1000, 1025, 1050, 1075, 1100]
        assert scaled_prices(5, 1000, 1100, 0, "linear") == [1000, 1025, 1050, 1075, 1100]

    def test_eased(self):
        assert scaled_prices(5, 1000, 1100, 0, "ease-in") == [1000, 1006.25, 1025, 1056.25, 1100]
        assert scaled_prices(5, 1000, 1100, 0, "ease-out") == [1000, 1043.75, 1075, 1093.75, 1100]

    def test_descending(self):
        assert scaled_prices(3, 600, 500) == [600, 550, 500]

    @pytest.mark.parametrize("seed", range(20))
    def test_jitter_stays_in_band(self, seed):
        prices = scaled_prices(5, 1000, 1100, 0.05, rng=random.Random(seed))
        assert 1000 <= min(prices) <= 1100
        assert 1000 <= max(prices) <= 1100
        assert prices[1] - prices[0] >= 25 - 100 * 0.05

    def test_single_price(self):
        assert scaled_prices(1, 1000, 1100) == [1000]
