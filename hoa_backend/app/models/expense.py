# app/models/expense.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import coerce_amount, to_firestore_amount


@dataclass
class ExpenseRecord:
    """
    Firestore 'expenses' 컬렉션의 문서 구조.
    용도, 금액, 거래일, 영수증은 수정될 수 있습니다.
    """
    expense_id: str
    purpose: str
    amount: Optional[Decimal]  # 저장된 값이 숫자가 아니면 None (집계에서 제외)
    transaction_date: datetime
    receipt_url: str = ''
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: Optional[datetime] = None

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'purpose': self.purpose,
            'amount': to_firestore_amount(self.amount),
            'transactionDate': self.transaction_date,
            'receiptUrl': self.receipt_url or '',
            'createdAt': self.created_at,
        }
        if self.updated_at is not None:
            data['updatedAt'] = self.updated_at
        return DateTimeUtils.for_firestore(data)

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> 'ExpenseRecord':
        transaction_date = DateTimeUtils.from_firestore(data.get('transactionDate'))
        if transaction_date is None:
            raise ValueError(f"transactionDate가 없는 지출 기록입니다 (id: {doc_id})")
        return cls(
            expense_id=doc_id,
            purpose=str(data.get('purpose') or ''),
            amount=coerce_amount(data.get('amount')),
            transaction_date=transaction_date,
            receipt_url=data.get('receiptUrl') or '',
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')) or transaction_date,
            updated_at=DateTimeUtils.from_firestore(data.get('updatedAt')),
        )
