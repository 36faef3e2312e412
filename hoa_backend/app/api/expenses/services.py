# app/api/expenses/services.py
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from app.core.context import CallerContext
from app.core.errors import ExpenseNotFoundError, ValidationError
from app.models.expense import ExpenseRecord
from app.services.storage_service import StorageService, UploadedFile
from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import parse_amount, sum_amounts

logger = logging.getLogger(__name__)


class ExpenseService:
    """
    지출 원장 서비스.
    영수증을 교체해도 이전 Blob은 삭제하지 않습니다. (기존 링크 유지가 저장소 정리보다 우선)
    """

    def __init__(self, store, storage_service: StorageService, timezone_name: str = 'UTC'):
        self.store = store
        self.storage_service = storage_service
        self.expenses_ref = store.collection('expenses')
        self.zone = DateTimeUtils.get_timezone(timezone_name)

    def _validate(self, purpose: str, amount: Any, transaction_date: Union[str, date, datetime]):
        purpose = (purpose or '').strip()
        if not purpose:
            raise ValidationError("지출 용도(purpose)는 필수 항목입니다.")
        amount = parse_amount(amount)
        try:
            transaction_dt = DateTimeUtils.parse_transaction_date(transaction_date, self.zone)
        except ValueError as e:
            raise ValidationError(str(e), details={"transaction_date": str(transaction_date)})
        return purpose, amount, transaction_dt

    def _upload_receipt(self, receipt_file: UploadedFile):
        path = self.storage_service.expense_receipt_path(receipt_file.filename)
        return path, self.storage_service.upload(path, receipt_file)

    def _discard_blob(self, path: str) -> None:
        try:
            self.storage_service.delete(path)
        except Exception as e:
            logger.error(f"고아 Blob 정리 실패 (path: {path}): {e}", exc_info=True)

    def record_expense(self, purpose: str, amount: Any, transaction_date: Union[str, date, datetime],
                       receipt_file: Optional[UploadedFile] = None,
                       caller: Optional[CallerContext] = None) -> ExpenseRecord:
        """지출을 기록합니다. 영수증이 있으면 먼저 업로드하고, 성공한 경우에만 문서를 씁니다."""
        purpose, amount, transaction_dt = self._validate(purpose, amount, transaction_date)

        receipt_path, receipt_url = None, ''
        if receipt_file is not None:
            receipt_path, receipt_url = self._upload_receipt(receipt_file)

        doc_ref = self.expenses_ref.document()
        record = ExpenseRecord(
            expense_id=doc_ref.id,
            purpose=purpose,
            amount=amount,
            transaction_date=transaction_dt,
            receipt_url=receipt_url,
        )
        try:
            doc_ref.set(record.to_firestore())
        except Exception as e:
            logger.error(f"지출 기록 저장 실패 (purpose: {purpose}): {e}", exc_info=True)
            if receipt_path:
                self._discard_blob(receipt_path)
            raise

        logger.info(f"지출 기록 생성: {record.expense_id} (amount: {amount}, by: {caller.uid if caller else 'system'})")
        return record

    def get_expense(self, expense_id: str) -> ExpenseRecord:
        doc = self.expenses_ref.document(expense_id).get()
        if not doc.exists:
            raise ExpenseNotFoundError("지출 기록을 찾을 수 없습니다.", details={"expense_id": expense_id})
        return ExpenseRecord.from_firestore(doc.id, doc.to_dict() or {})

    def update_expense(self, expense_id: str, purpose: str, amount: Any,
                       transaction_date: Union[str, date, datetime],
                       receipt_file: Optional[UploadedFile] = None,
                       existing_receipt_url: Optional[str] = None,
                       caller: Optional[CallerContext] = None) -> ExpenseRecord:
        """
        지출 기록을 수정합니다.
        - 새 영수증이 있을 때만 업로드하고, 없으면 existing_receipt_url(미전달 시 저장된 값)을 그대로 유지합니다.
        - 교체된 이전 영수증 Blob은 삭제하지 않습니다.
        """
        purpose, amount, transaction_dt = self._validate(purpose, amount, transaction_date)
        current = self.get_expense(expense_id)

        receipt_path = None
        if receipt_file is not None:
            receipt_path, receipt_url = self._upload_receipt(receipt_file)
        elif existing_receipt_url is not None:
            receipt_url = existing_receipt_url
        else:
            receipt_url = current.receipt_url

        updated = ExpenseRecord(
            expense_id=expense_id,
            purpose=purpose,
            amount=amount,
            transaction_date=transaction_dt,
            receipt_url=receipt_url or '',
            created_at=current.created_at,
            updated_at=DateTimeUtils.now(),
        )
        try:
            self.expenses_ref.document(expense_id).update(updated.to_firestore())
        except Exception as e:
            logger.error(f"지출 기록 수정 실패 (expense_id: {expense_id}): {e}", exc_info=True)
            if receipt_path:
                self._discard_blob(receipt_path)
            raise

        if receipt_path and current.receipt_url:
            logger.info(f"영수증 교체: 이전 파일은 유지합니다 (expense_id: {expense_id}, old: {current.receipt_url})")
        logger.info(f"지출 기록 수정: {expense_id} (by: {caller.uid if caller else 'system'})")
        return updated

    def list_year(self, year: int) -> List[ExpenseRecord]:
        """[해당 연도 1월 1일, 다음 연도 1월 1일) 범위의 지출 기록"""
        start, end = DateTimeUtils.year_range(year, self.zone)
        return self.list_range(start, end)

    def list_range(self, start: datetime, end: datetime) -> List[ExpenseRecord]:
        query = self.expenses_ref.where('transactionDate', '>=', start).where('transactionDate', '<', end)
        records = []
        for doc in query.stream():
            try:
                records.append(ExpenseRecord.from_firestore(doc.id, doc.to_dict() or {}))
            except ValueError as e:
                logger.warning(f"지출 문서 디코딩 실패, 건너뜀: {e}")
        return records

    def aggregate_year(self, year: int) -> Decimal:
        """해당 연도 지출 합계. 숫자가 아니거나 누락된 금액은 0으로 보고 제외합니다."""
        return sum_amounts(self.list_year(year), 'expense_id')
