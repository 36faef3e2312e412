# app/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 중앙화된 유틸리티 모듈

이 모듈의 목적:
1. Firestore에는 항상 UTC timezone-aware datetime으로 저장
2. 회계 월/연도 경계는 협회 기준 시간대(HOA_TIMEZONE)의 벽시계 기준으로 계산
3. 요청에서 받은 날짜 문자열을 한 곳에서 파싱
"""

import logging
from datetime import datetime, date, timezone, time, tzinfo
from typing import Union, Any, Tuple
from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def get_timezone(name: str) -> tzinfo:
        """IANA 시간대 이름을 tzinfo로 변환합니다. 알 수 없는 이름이면 ValueError."""
        zone = dateutil_tz.gettz(name)
        if zone is None:
            raise ValueError(f"알 수 없는 시간대입니다: {name}")
        return zone

    @staticmethod
    def parse_transaction_date(value: Union[str, date, datetime], zone: tzinfo) -> datetime:
        """
        거래일 입력값을 UTC datetime으로 변환합니다.

        - 'YYYY-MM-DD' 또는 date 객체: 협회 시간대의 해당 일 00:00
        - 시간대 없는 datetime/문자열: 협회 시간대의 벽시계 시간으로 간주
        - 시간대가 있는 값: 그대로 UTC로 정규화
        """
        if value is None or value == '':
            raise ValueError("거래일은 필수 항목입니다")

        if isinstance(value, str):
            try:
                if len(value.strip()) == 10:
                    value = dateutil_parser.isoparse(value.strip()).date()
                else:
                    value = dateutil_parser.isoparse(value.strip().replace('Z', '+00:00'))
            except (ValueError, OverflowError) as e:
                logger.warning(f"거래일 파싱 실패: {value} - {e}")
                raise ValueError(f"잘못된 거래일 형식입니다: {value}")

        if isinstance(value, datetime):
            local = value if value.tzinfo is not None else value.replace(tzinfo=zone)
            return local.astimezone(timezone.utc)
        if isinstance(value, date):
            return datetime.combine(value, time.min).replace(tzinfo=zone).astimezone(timezone.utc)

        raise ValueError(f"거래일은 문자열 또는 date/datetime 객체여야 합니다: {type(value)}")

    @staticmethod
    def to_local(dt: datetime, zone: tzinfo) -> datetime:
        """UTC(또는 naive) datetime을 협회 시간대의 벽시계 시간으로 변환"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(zone)

    @staticmethod
    def year_range(year: int, zone: tzinfo) -> Tuple[datetime, datetime]:
        """[해당 연도 1월 1일, 다음 연도 1월 1일) 범위를 UTC로 반환"""
        start = datetime(year, 1, 1, tzinfo=zone)
        end = start + relativedelta(years=1)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 객체의 날짜/시간 필드를 변환

        변환 규칙:
        - date -> datetime (00:00:00 UTC)
        - timezone-naive datetime -> timezone-aware datetime (UTC)
        - dict/list 내부 재귀적 변환
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, date):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(value: Any) -> Any:
        """
        Firestore에서 읽은 timestamp 값을 UTC datetime으로 변환.
        datetime이 아닌 값(누락, 문자열 등)은 None을 반환합니다.
        """
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if hasattr(value, 'timestamp') and callable(value.timestamp):
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        return None

    @staticmethod
    def to_timestamp_ms(dt: datetime) -> int:
        """datetime 객체를 Unix timestamp (밀리초)로 변환"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

