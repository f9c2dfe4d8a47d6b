"""Tests for prediction market domain calculations."""

import pytest
from pipeline.market_math import (
    competitiveness, dollar_price_to_probability, implied_probability,
    to_percent,
)


class TestImpliedProbability:
    def test_normal_price(self):
        assert implied_probability(0.65) == 0.65

    def test_clamps_to_zero(self):
        assert implied_probability(-0.1) == 0.0

    def test_clamps_to_one(self):
        assert implied_probability(1.5) == 1.0

    def test_none_reads_as_zero(self):
        assert implied_probability(None) == 0.0


class TestDollarPriceToProbability:
    def test_face_value_one_dollar(self):
        assert dollar_price_to_probability(0.42) == 0.42

    def test_other_face_value(self):
        assert dollar_price_to_probability(5.0, face_value=10.0) == 0.5

    def test_zero_face_value(self):
        assert dollar_price_to_probability(0.5, face_value=0) == 0.0


class TestCompetitiveness:
    def test_coin_flip_is_most_competitive(self):
        assert competitiveness(0.5) == 0.0

    def test_settled_market(self):
        assert competitiveness(1.0) == 50.0
        assert competitiveness(0.0) == 50.0

    def test_symmetric(self):
        assert competitiveness(0.3) == pytest.approx(competitiveness(0.7))


class TestToPercent:
    def test_rounds_to_one_digit(self):
        assert to_percent(0.6534) == 65.3

    def test_none(self):
        assert to_percent(None) == 0.0
