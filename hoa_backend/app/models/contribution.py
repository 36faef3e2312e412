# app/models/contribution.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import coerce_amount, to_firestore_amount


@dataclass
class ContributionRecord:
    """
    Firestore 'contributions' 컬렉션의 문서 구조. 생성 후 변경되지 않습니다.
    month_year는 transaction_date에서 파생된 값이며 동등 조건 조회를 위해 중복 저장합니다.
    """
    contribution_id: str
    member_id: str
    account_number: str
    member_name: str
    amount: Optional[Decimal]  # 저장된 값이 숫자가 아니면 None (집계에서 제외)
    recipient: str
    month_year: str
    transaction_date: datetime
    payment_method: str = 'Cash Payment'
    proof_url: str = ''
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_firestore(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            'memberId': self.member_id,
            'accountNumber': self.account_number,
            'memberName': self.member_name,
            'amount': to_firestore_amount(self.amount),
            'recipient': self.recipient,
            'paymentMethod': self.payment_method,
            'monthYear': self.month_year,
            'transactionDate': self.transaction_date,
            'proofUrl': self.proof_url or '',
            'createdAt': self.created_at,
        })

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> 'ContributionRecord':
        transaction_date = DateTimeUtils.from_firestore(data.get('transactionDate'))
        if transaction_date is None:
            raise ValueError(f"transactionDate가 없는 납부 기록입니다 (id: {doc_id})")
        return cls(
            contribution_id=doc_id,
            member_id=str(data.get('memberId') or ''),
            account_number=str(data.get('accountNumber') or ''),
            member_name=str(data.get('memberName') or ''),
            amount=coerce_amount(data.get('amount')),
            recipient=str(data.get('recipient') or ''),
            month_year=str(data.get('monthYear') or ''),
            transaction_date=transaction_date,
            payment_method=str(data.get('paymentMethod') or 'Cash Payment'),
            proof_url=data.get('proofUrl') or '',
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')) or transaction_date,
        )
