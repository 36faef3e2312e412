# app/models/member.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import coerce_amount


class MemberStatus(str, Enum):
    """회원 상태. Deleted 회원은 모든 회원 수 집계와 조회에서 제외됩니다."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    NEW = "New"
    PENDING = "Pending"
    DELETED = "Deleted"


@dataclass
class Member:
    """
    Firestore 'members' 컬렉션 문서 구조. (문서 ID = 인증 uid)
    회원 관리 자체는 이 서비스의 범위 밖이며, 원장은 이름/회비 조회용으로만 읽습니다.
    """
    member_id: str
    account_number: str
    surname: str = ''
    first_name: str = ''
    middle_name: str = ''
    status: MemberStatus = MemberStatus.NEW
    default_dues: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        """비어 있지 않은 성/이름/중간이름을 공백으로 이어 붙입니다."""
        parts = [self.surname, self.first_name, self.middle_name]
        return ' '.join(part.strip() for part in parts if part and part.strip()).strip()

    @property
    def is_deleted(self) -> bool:
        return self.status == MemberStatus.DELETED

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> 'Member':
        status = data.get('status') or MemberStatus.NEW.value
        try:
            status = MemberStatus(status)
        except ValueError:
            raise ValueError(f"알 수 없는 회원 상태입니다 (member_id: {doc_id}, status: {status})")
        return cls(
            member_id=doc_id,
            account_number=str(data.get('accountNumber') or ''),
            surname=str(data.get('surname') or ''),
            first_name=str(data.get('firstName') or ''),
            middle_name=str(data.get('middleName') or ''),
            status=status,
            default_dues=coerce_amount(data.get('defaultDues')),
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')),
        )
