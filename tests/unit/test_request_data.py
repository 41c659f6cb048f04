"""
Unit tests for request payload helpers.
"""

import pytest

from app.exceptions import ValidationError
from app.utils.request_data import int_field


class TestIntField:

    @pytest.mark.parametrize('value, expected', [(3, 3), ('4', 4), (2.0, 2)])
    def test_accepts_integral_values(self, value, expected):
        assert int_field({'quantity': value}, 'quantity') == expected

    def test_default_is_used_when_missing(self):
        assert int_field({}, 'quantity', default=1) == 1

    @pytest.mark.parametrize('value', [2.7, '2.7', 'abc', True, None, ''])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError) as exc:
            int_field({'quantity': value}, 'quantity')

        assert 'quantity' in exc.value.errors
