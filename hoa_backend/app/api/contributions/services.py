# app/api/contributions/services.py
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from app.core.context import CallerContext
from app.core.errors import MemberNotFoundError, ValidationError
from app.models.contribution import ContributionRecord
from app.models.member import Member, MemberStatus
from app.services.storage_service import StorageService, UploadedFile
from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import (
    ZERO, coerce_amount, format_month_year, month_year_key, parse_amount,
    parse_month_year_key, sum_amounts, to_firestore_amount,
)

logger = logging.getLogger(__name__)

DUES_SETTINGS_DOC = 'dues'


@dataclass
class MemberLookup:
    """계좌번호 조회 결과. 납부 화면의 이름/금액 자동 입력에 사용됩니다."""
    member_id: str
    account_number: str
    display_name: str
    status: MemberStatus
    suggested_amount: Decimal


@dataclass
class LedgerSummary:
    """연간 납부 합계와 특정 월의 납부/미납 회원 수."""
    year: int
    month_year: str
    total_collections: Decimal
    paid_member_count: int
    unpaid_member_count: int
    total_members: int


class ContributionService:
    """
    회비 납부 원장 서비스.
    - 납부 기록은 생성 후 수정/삭제하지 않습니다.
    - 증빙 파일은 반드시 문서 기록 전에 업로드되며, 업로드 실패 시 아무것도 기록하지 않습니다.
    """

    def __init__(self, store, storage_service: StorageService, timezone_name: str = 'UTC',
                 default_monthly_dues: Union[str, Decimal] = '30.00'):
        self.store = store
        self.storage_service = storage_service
        self.members_ref = store.collection('members')
        self.contributions_ref = store.collection('contributions')
        self.settings_ref = store.collection('settings')
        self.zone = DateTimeUtils.get_timezone(timezone_name)
        self.default_monthly_dues = parse_amount(default_monthly_dues, 'DEFAULT_MONTHLY_DUES')

    # --- 회원 조회 ---

    def lookup_member(self, account_number: str) -> MemberLookup:
        """계좌번호로 삭제되지 않은 회원을 찾아 표시 이름과 기본 납부액을 반환합니다."""
        account_number = (account_number or '').strip()
        if not account_number:
            raise ValidationError("계좌번호(accountNumber)는 필수 항목입니다.")

        for doc in self.members_ref.where('accountNumber', '==', account_number).stream():
            try:
                member = Member.from_firestore(doc.id, doc.to_dict() or {})
            except ValueError as e:
                logger.warning(f"회원 문서 디코딩 실패, 건너뜀: {e}")
                continue
            if member.is_deleted:
                continue
            return MemberLookup(
                member_id=member.member_id,
                account_number=member.account_number,
                display_name=member.display_name,
                status=member.status,
                suggested_amount=member.default_dues or self.get_monthly_dues(),
            )

        raise MemberNotFoundError(f"Account No. {account_number} not found.",
                                  details={"account_number": account_number})

    # --- 납부 기록 ---

    def record_payment(self, account_number: str, recipient: str,
                       transaction_date: Union[str, date, datetime],
                       amount: Any = None, proof_file: Optional[UploadedFile] = None,
                       payment_method: str = 'Cash Payment',
                       caller: Optional[CallerContext] = None) -> ContributionRecord:
        """
        회원의 납부 기록을 생성합니다.

        :param amount: None이면 회원의 defaultDues(없으면 협회 월 회비)로 채웁니다.
        :raises ValidationError: 입력값이 잘못된 경우
        :raises MemberNotFoundError: 계좌번호가 없거나 삭제된 회원인 경우
        :raises UploadError: 증빙 업로드 실패 (문서는 기록되지 않음)
        """
        recipient = (recipient or '').strip()
        if not recipient:
            raise ValidationError("수령인(recipient)은 필수 항목입니다.")
        try:
            transaction_dt = DateTimeUtils.parse_transaction_date(transaction_date, self.zone)
        except ValueError as e:
            raise ValidationError(str(e), details={"transaction_date": str(transaction_date)})
        explicit_amount = None if amount in (None, '') else parse_amount(amount)

        member = self.lookup_member(account_number)
        final_amount = explicit_amount if explicit_amount is not None else parse_amount(member.suggested_amount)

        proof_url, proof_path = '', None
        if proof_file is not None:
            proof_path = self.storage_service.contribution_proof_path(member.account_number, proof_file.filename)
            proof_url = self.storage_service.upload(proof_path, proof_file)

        doc_ref = self.contributions_ref.document()
        record = ContributionRecord(
            contribution_id=doc_ref.id,
            member_id=member.member_id,
            account_number=member.account_number,
            member_name=member.display_name,
            amount=final_amount,
            recipient=recipient,
            month_year=month_year_key(transaction_dt, self.zone),
            transaction_date=transaction_dt,
            payment_method=(payment_method or 'Cash Payment').strip(),
            proof_url=proof_url,
        )
        try:
            doc_ref.set(record.to_firestore())
        except Exception as e:
            logger.error(f"납부 기록 저장 실패 (account: {member.account_number}): {e}", exc_info=True)
            if proof_path:
                self._discard_blob(proof_path)
            raise

        logger.info(
            f"납부 기록 생성: {record.contribution_id} (account: {record.account_number}, "
            f"amount: {record.amount}, monthYear: {record.month_year}, by: {caller.uid if caller else 'system'})"
        )
        return record

    def _discard_blob(self, path: str) -> None:
        """문서 기록에 실패한 직후 방금 올린 Blob을 지웁니다. 실패해도 원래 예외를 우선합니다."""
        try:
            self.storage_service.delete(path)
        except Exception as e:
            logger.error(f"고아 Blob 정리 실패 (path: {path}): {e}", exc_info=True)

    # --- 조회 / 집계 ---

    def _decode(self, docs) -> List[ContributionRecord]:
        records = []
        for doc in docs:
            try:
                records.append(ContributionRecord.from_firestore(doc.id, doc.to_dict() or {}))
            except ValueError as e:
                logger.warning(f"납부 문서 디코딩 실패, 건너뜀: {e}")
        return records

    def query_month(self, month_year: str) -> List[ContributionRecord]:
        """monthYear 동등 조건으로 해당 월의 납부 기록을 조회합니다. (순서 보장 없음)"""
        year, month = parse_month_year_key(month_year)
        key = format_month_year(year, month)
        return self._decode(self.contributions_ref.where('monthYear', '==', key).stream())

    def list_range(self, start: datetime, end: datetime) -> List[ContributionRecord]:
        """[start, end) 범위의 납부 기록을 조회합니다."""
        query = self.contributions_ref.where('transactionDate', '>=', start).where('transactionDate', '<', end)
        return self._decode(query.stream())

    def list_year(self, year: int) -> List[ContributionRecord]:
        start, end = DateTimeUtils.year_range(year, self.zone)
        return self.list_range(start, end)

    def total_collections(self, year: int) -> Decimal:
        return sum_amounts(self.list_year(year), 'contribution_id')

    def count_total_members(self) -> int:
        """Deleted가 아닌 회원 수"""
        # count()는 문서를 모두 가져오지 않고 서버에서 개수만 집계합니다.
        query = self.members_ref.where('status', '!=', MemberStatus.DELETED.value)
        return int(query.count().get()[0][0].value)

    def paid_member_count(self, month_year: str) -> int:
        """
        해당 월에 납부한 회원 수.
        같은 회원이 여러 번 납부해도 한 번만 셉니다. (accountNumber 기준 중복 제거)
        """
        return len(paid_accounts(self.query_month(month_year)))

    def aggregate_year(self, year: int, month: int) -> LedgerSummary:
        """연간 납부 합계와 지정한 월의 납부/미납 회원 수를 계산합니다."""
        month_year = format_month_year(year, month)
        total_members = self.count_total_members()
        paid = self.paid_member_count(month_year)
        return LedgerSummary(
            year=year,
            month_year=month_year,
            total_collections=self.total_collections(year),
            paid_member_count=paid,
            unpaid_member_count=max(0, total_members - paid),
            total_members=total_members,
        )

    # --- 월 회비 설정 ---

    def get_monthly_dues(self) -> Decimal:
        """settings/dues 문서의 월 회비. 문서가 없으면 기본값으로 생성합니다."""
        dues_ref = self.settings_ref.document(DUES_SETTINGS_DOC)
        doc = dues_ref.get()
        if doc.exists:
            amount = coerce_amount((doc.to_dict() or {}).get('amount'))
            if amount is not None and amount > ZERO:
                return amount
            logger.warning("settings/dues 문서의 금액이 올바르지 않아 기본값을 사용합니다.")
            return self.default_monthly_dues

        dues_ref.set({
            'amount': to_firestore_amount(self.default_monthly_dues),
            'lastUpdated': DateTimeUtils.now(),
            'updatedBy': 'system',
        })
        logger.info(f"settings/dues 문서를 기본값({self.default_monthly_dues})으로 생성했습니다.")
        return self.default_monthly_dues

    def set_monthly_dues(self, amount: Any, caller: CallerContext) -> Decimal:
        dues = parse_amount(amount)
        self.settings_ref.document(DUES_SETTINGS_DOC).set({
            'amount': to_firestore_amount(dues),
            'lastUpdated': DateTimeUtils.now(),
            'updatedBy': caller.uid,
        }, merge=True)
        logger.info(f"월 회비 변경: {dues} (by: {caller.uid})")
        return dues

    # --- 회원 상태 자동 갱신 ---

    def refresh_member_statuses(self, today: Optional[datetime] = None) -> int:
        """
        이번 달 납부 여부로 회원 상태를 다시 계산합니다.
        - 납부함 -> Active
        - 미납 & 이번 달 가입 -> New (관리자가 이미 Active/Inactive로 정한 경우 유지)
        - 그 외 미납 -> Inactive
        상태가 바뀐 회원 문서만 갱신하고, 갱신한 수를 반환합니다.
        """
        local_today = DateTimeUtils.to_local(today or DateTimeUtils.now(), self.zone)
        month_year = format_month_year(local_today.year, local_today.month)
        paid = paid_accounts(self.query_month(month_year))

        updated = 0
        query = self.members_ref.where('status', '!=', MemberStatus.DELETED.value)
        for doc in query.stream():
            try:
                member = Member.from_firestore(doc.id, doc.to_dict() or {})
            except ValueError as e:
                logger.warning(f"회원 문서 디코딩 실패, 건너뜀: {e}")
                continue
            if not member.account_number:
                continue

            new_status = self._next_status(member, member.account_number in paid, local_today)
            if new_status != member.status:
                doc.reference.update({'status': new_status.value, 'statusUpdatedAt': DateTimeUtils.now()})
                logger.info(f"회원 상태 변경: {member.account_number} {member.status.value} -> {new_status.value}")
                updated += 1

        logger.info(f"회원 상태 자동 갱신 완료 ({month_year}): {updated}명 변경")
        return updated

    def _next_status(self, member: Member, paid_this_month: bool, local_today: datetime) -> MemberStatus:
        if paid_this_month:
            return MemberStatus.ACTIVE
        joined = DateTimeUtils.to_local(member.created_at, self.zone) if member.created_at else local_today
        if (joined.year, joined.month) == (local_today.year, local_today.month):
            if member.status in (MemberStatus.ACTIVE, MemberStatus.INACTIVE):
                return member.status
            return MemberStatus.NEW
        return MemberStatus.INACTIVE


def paid_accounts(records: List[ContributionRecord]) -> set:
    """납부 기록에서 비어 있지 않은 accountNumber 집합을 만듭니다."""
    return {record.account_number for record in records if record.account_number}

