# app/core/context.py
from dataclasses import dataclass
from typing import Optional

from flask_jwt_extended import get_jwt, get_jwt_identity


@dataclass(frozen=True)
class CallerContext:
    """
    현재 요청을 보낸 사용자 정보.
    전역 인증 상태를 읽는 대신 모든 원장/카운터 연산에 명시적으로 전달됩니다.
    """
    uid: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


def caller_from_jwt() -> CallerContext:
    """검증된 JWT에서 CallerContext를 만듭니다. (@jwt_required 이후에만 호출)"""
    claims = get_jwt()
    return CallerContext(
        uid=get_jwt_identity(),
        display_name=claims.get('name'),
        photo_url=claims.get('picture'),
    )
