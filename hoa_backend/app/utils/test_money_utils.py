# app/utils/test_money_utils.py
"""
금액/월 키 유틸리티 테스트

사용법: python -m pytest app/utils/test_money_utils.py -v
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from app.core.errors import ValidationError
from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import (
    MONTH_LABELS, coerce_amount, format_month_year, month_label, month_year_key,
    parse_amount, parse_month_year_key, sum_amounts, to_firestore_amount,
)


def test_parse_amount_rounds_half_up():
    """입력 금액은 소수점 2자리로 반올림(ROUND_HALF_UP)되어야 함"""
    assert parse_amount('30') == Decimal('30.00')
    assert parse_amount('10.005') == Decimal('10.01')
    assert parse_amount(12.5) == Decimal('12.50')
    assert parse_amount('1,250.50') == Decimal('1250.50')


@pytest.mark.parametrize('value', [None, '', 'abc', '0', 0, '-5', True, float('nan'), 'Infinity'])
def test_parse_amount_rejects_invalid(value):
    """0 이하, 숫자가 아닌 값, bool, NaN/Infinity는 거부"""
    with pytest.raises(ValidationError):
        parse_amount(value)


def test_coerce_amount_is_lenient():
    """저장된 값 읽기: 잘못된 값은 None, 0은 허용"""
    assert coerce_amount(30) == Decimal('30.00')
    assert coerce_amount('45.5') == Decimal('45.50')
    assert coerce_amount(0) == Decimal('0.00')
    assert coerce_amount('n/a') is None
    assert coerce_amount(-1) is None
    assert coerce_amount(None) is None


def test_to_firestore_amount_returns_float():
    assert to_firestore_amount(Decimal('30.00')) == 30.0
    assert isinstance(to_firestore_amount(Decimal('1.10')), float)


def test_sum_amounts_skips_unreadable_amounts():
    """금액이 None인 기록은 합계에서 제외"""
    records = [
        SimpleNamespace(record_id='a', amount=Decimal('30.00')),
        SimpleNamespace(record_id='b', amount=None),
        SimpleNamespace(record_id='c', amount=Decimal('0.10')),
    ]
    assert sum_amounts(records, 'record_id') == Decimal('30.10')
    assert sum_amounts([], 'record_id') == Decimal('0.00')


def test_format_and_parse_month_year_key():
    assert format_month_year(2025, 6) == 'June 2025'
    assert parse_month_year_key('June 2025') == (2025, 6)
    assert parse_month_year_key('  june   2025 ') == (2025, 6)
    assert parse_month_year_key('DECEMBER 2024') == (2024, 12)


@pytest.mark.parametrize('key', ['', 'June', '2025 June', 'Juneish 2025', 'June 25'])
def test_parse_month_year_key_rejects_malformed(key):
    with pytest.raises(ValidationError):
        parse_month_year_key(key)


def test_format_month_year_rejects_bad_month():
    with pytest.raises(ValidationError):
        format_month_year(2025, 13)


def test_month_year_key_uses_association_timezone():
    """UTC로는 5월 31일이지만 마닐라(UTC+8)에서는 6월 1일인 거래"""
    dt = datetime(2025, 5, 31, 17, 30, tzinfo=timezone.utc)
    manila = DateTimeUtils.get_timezone('Asia/Manila')

    assert month_year_key(dt, DateTimeUtils.get_timezone('UTC')) == 'May 2025'
    assert month_year_key(dt, manila) == 'June 2025'
    assert month_label(dt, manila) == 'JUN'


def test_month_labels():
    assert len(MONTH_LABELS) == 12
    assert MONTH_LABELS[0] == 'JAN'
    assert MONTH_LABELS[-1] == 'DEC'
