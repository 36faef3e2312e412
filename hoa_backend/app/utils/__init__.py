# app/utils/__init__.py
"""
유틸리티 모듈 패키지

이 패키지는 프로젝트 전체에서 공통으로 사용되는 시간/금액 유틸리티 함수들을 포함합니다.
"""

from .datetime_utils import DateTimeUtils
from .money_utils import (
    MONTH_LABELS,
    parse_amount, coerce_amount, to_firestore_amount,
    month_year_key, parse_month_year_key, month_label,
)

__all__ = [
    'DateTimeUtils',
    'MONTH_LABELS',
    'parse_amount', 'coerce_amount', 'to_firestore_amount',
    'month_year_key', 'parse_month_year_key', 'month_label',
]
