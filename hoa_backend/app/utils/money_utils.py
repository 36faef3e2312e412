# app/utils/money_utils.py
"""
금액 파싱/반올림과 월 키(monthYear) 계산을 위한 순수 함수 모음.

금액은 내부적으로 항상 Decimal(소수점 2자리, ROUND_HALF_UP)로 다루고,
Firestore에는 숫자(float)로 저장합니다.
"""
import logging
import re
from datetime import datetime, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Tuple

from app.core.errors import ValidationError
from app.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)
# 차트용 고정 라벨 (항상 12개)
MONTH_LABELS = tuple(name[:3].upper() for name in MONTH_NAMES)

_MONTH_YEAR_PATTERN = re.compile(r'^\s*([A-Za-z]+)\s+(\d{4})\s*$')


def round_money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            number = Decimal(str(value))
        elif isinstance(value, (int, Decimal)):
            number = Decimal(value)
        elif isinstance(value, str) and value.strip():
            number = Decimal(value.strip().replace(',', ''))
        else:
            return None
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def parse_amount(value: Any, field_name: str = 'amount') -> Decimal:
    """
    사용자가 입력한 금액을 검증하고 Decimal로 변환합니다.
    0 이하, 숫자가 아닌 값은 ValidationError를 발생시킵니다.
    """
    number = _to_decimal(value)
    if number is None:
        raise ValidationError(f"{field_name} 값이 올바른 숫자가 아닙니다.", details={field_name: str(value)})
    number = round_money(number)
    if number <= ZERO:
        raise ValidationError(f"{field_name} 값은 0보다 커야 합니다.", details={field_name: str(value)})
    return number


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    저장된 문서의 금액 필드를 관대하게 읽습니다.
    숫자가 아니거나 음수이면 None을 반환하여 집계에서 제외되도록 합니다.
    """
    number = _to_decimal(value)
    if number is None or number < 0:
        return None
    return round_money(number)


def to_firestore_amount(value: Decimal) -> float:
    """Firestore는 Decimal 타입이 없으므로 float로 저장합니다."""
    return float(round_money(value))


def sum_amounts(records: Iterable[Any], id_attr: str) -> Decimal:
    """
    레코드 금액 합계. 읽을 수 없는 금액(None)은 경고 후 제외합니다.
    id_attr는 제외된 기록을 로그에 남길 때 사용할 식별자 속성 이름입니다.
    """
    total = ZERO
    for record in records:
        if record.amount is None:
            logger.warning(f"금액이 올바르지 않은 기록을 집계에서 제외합니다: {getattr(record, id_attr)}")
            continue
        total += record.amount
    return round_money(total)


def format_month_year(year: int, month: int) -> str:
    """(2025, 6) -> 'June 2025'"""
    if not 1 <= month <= 12:
        raise ValidationError(f"월은 1~12 사이여야 합니다: {month}")
    return f"{MONTH_NAMES[month - 1]} {year}"


def month_year_key(dt: datetime, zone: tzinfo) -> str:
    """거래일의 협회 시간대 기준 월을 'June 2025' 형식으로 반환합니다."""
    local = DateTimeUtils.to_local(dt, zone)
    return format_month_year(local.year, local.month)


def parse_month_year_key(key: str) -> Tuple[int, int]:
    """'June 2025' -> (2025, 6). 형식이 잘못되면 ValidationError."""
    match = _MONTH_YEAR_PATTERN.match(key or '')
    if not match:
        raise ValidationError(f"monthYear 형식이 잘못되었습니다: '{key}'")
    name, year = match.group(1).capitalize(), int(match.group(2))
    if name not in MONTH_NAMES:
        raise ValidationError(f"알 수 없는 월 이름입니다: '{match.group(1)}'")
    return year, MONTH_NAMES.index(name) + 1


def month_label(dt: datetime, zone: tzinfo) -> str:
    """거래일의 협회 시간대 기준 월을 'JUN' 형식 라벨로 반환합니다."""
    return MONTH_LABELS[DateTimeUtils.to_local(dt, zone).month - 1]
