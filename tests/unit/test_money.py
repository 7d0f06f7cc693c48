"""
Unit tests for money and percentage arithmetic.
"""

import pytest
from decimal import Decimal

from flowcrm.exceptions import InvalidInputError
from flowcrm.utils.money import (
    to_decimal, round_money,
    margin_from_cost_and_price, markup_from_cost_and_price,
    price_from_target_margin, price_from_target_markup,
    margin_to_markup, markup_to_margin,
)


class TestToDecimal:
    """Tests for boundary parsing."""

    @pytest.mark.parametrize('value, expected', [
        (10, Decimal('10')),
        ('15.50', Decimal('15.50')),
        (' 3 ', Decimal('3')),
        (0.1, Decimal('0.1')),
        (Decimal('2.5'), Decimal('2.5')),
    ])
    def test_accepts_numbers_and_numeric_strings(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize('value', [None, '', 'abc', 'NaN', 'Infinity', True])
    def test_rejects_garbage(self, value):
        with pytest.raises(InvalidInputError, match='must be a valid number'):
            to_decimal(value, 'cost')


class TestRoundMoney:
    """Tests for half-up rounding."""

    def test_rounds_half_up(self):
        assert round_money('1.005') == Decimal('1.01')
        assert round_money('2.675') == Decimal('2.68')

    def test_keeps_two_places(self):
        assert round_money(27) == Decimal('27.00')
        assert str(round_money('33.333333')) == '33.33'


class TestMarginAndMarkup:
    """Tests for margin/markup of a cost and price."""

    def test_margin_and_markup_of_100_and_150(self):
        margin = margin_from_cost_and_price(100, 150)
        markup = markup_from_cost_and_price(100, 150)

        assert margin['margin_percentage'] == Decimal('33.33')
        assert margin['profit'] == Decimal('50.00')
        assert markup['markup_percentage'] == Decimal('50.00')

    def test_margin_rejects_price_below_cost(self):
        with pytest.raises(InvalidInputError, match='cannot be less than cost'):
            margin_from_cost_and_price(100, 90)

    def test_markup_allows_price_below_cost(self):
        result = markup_from_cost_and_price(100, 90)
        assert result['markup_percentage'] == Decimal('-10.00')
        assert result['profit'] == Decimal('-10.00')

    @pytest.mark.parametrize('cost, price', [(0, 10), (-5, 10), (10, 0), (10, -1)])
    def test_non_positive_inputs_are_rejected(self, cost, price):
        with pytest.raises(InvalidInputError):
            margin_from_cost_and_price(cost, price)
        with pytest.raises(InvalidInputError):
            markup_from_cost_and_price(cost, price)

    def test_equal_cost_and_price_gives_zero(self):
        assert margin_from_cost_and_price(80, 80)['margin_percentage'] == Decimal('0.00')
        assert markup_from_cost_and_price(80, 80)['markup_percentage'] == Decimal('0.00')


class TestPriceFromTargets:
    """Tests for price reconstruction from a target percentage."""

    def test_price_for_target_margin(self):
        assert price_from_target_margin(100, 20) == Decimal('125')

    def test_price_for_target_markup(self):
        assert price_from_target_markup(100, 60) == Decimal('160')

    def test_zero_targets_return_cost(self):
        assert price_from_target_margin(40, 0) == Decimal('40')
        assert price_from_target_markup(40, 0) == Decimal('40')

    @pytest.mark.parametrize('margin', [100, '100.00', 150, -1])
    def test_margin_outside_range_is_rejected(self, margin):
        with pytest.raises(InvalidInputError, match='margin percentage'):
            price_from_target_margin(100, margin)

    def test_negative_markup_is_rejected(self):
        with pytest.raises(InvalidInputError, match='markup percentage'):
            price_from_target_markup(100, -5)

    def test_large_markup_is_accepted(self):
        assert price_from_target_markup(10, 900) == Decimal('100')


class TestConversions:
    """Tests for margin <-> markup conversion."""

    def test_margin_to_markup(self):
        assert margin_to_markup(50) == Decimal('100.00')
        assert margin_to_markup(20) == Decimal('25.00')

    def test_markup_to_margin(self):
        assert markup_to_margin(100) == Decimal('50.00')
        assert markup_to_margin(25) == Decimal('20.00')

    def test_zero_maps_to_zero(self):
        assert margin_to_markup(0) == Decimal('0.00')
        assert markup_to_margin(0) == Decimal('0.00')

    @pytest.mark.parametrize('markup', ['10', '37.5', '60', '150'])
    def test_round_trip_within_rounding(self, markup):
        back = margin_to_markup(markup_to_margin(markup))
        assert abs(back - Decimal(markup)) <= Decimal('0.05')

    def test_margin_of_100_cannot_be_converted(self):
        with pytest.raises(InvalidInputError):
            margin_to_markup(100)
