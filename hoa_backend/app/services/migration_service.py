# app/services/migration_service.py
"""
레거시 필드명 일괄 변환 서비스

초기 클라이언트가 남긴 문서(accNo, proofURL, timestamp 등)를 현재 스키마의
필드명으로 한 번에 옮깁니다. 읽기 코드는 현재 필드명만 사용합니다.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from firebase_admin import firestore

from app.services.firestore_service import commit_in_batches
from app.utils.datetime_utils import DateTimeUtils
from app.utils.money_utils import month_year_key

logger = logging.getLogger(__name__)

# 컬렉션별 (레거시 필드명 -> 현재 필드명)
LEGACY_FIELD_MAP: Dict[str, Dict[str, str]] = {
    'members': {
        'accNo': 'accountNumber',
        'firstname': 'firstName',
        'middlename': 'middleName',
        'default_dues': 'defaultDues',
    },
    'contributions': {
        'accNo': 'accountNumber',
        'name': 'memberName',
        'proofURL': 'proofUrl',
        'timestamp': 'transactionDate',
    },
    'expenses': {
        'timestamp': 'transactionDate',
        'receiptURL': 'receiptUrl',
    },
    'posts': {
        'imageUrl': 'authorPhotoUrl',
        'text': 'content',
    },
    # posts/{id}/comments, posts/{id}/reacts
    'post_children': {
        'authorPhotoURL': 'photoUrl',
        'text': 'content',
    },
}

# 빈 링크를 ""로 통일하는 원장 컬렉션 필드
LEDGER_LINK_FIELDS = {
    'contributions': ('proofUrl',),
    'expenses': ('receiptUrl',),
}

POST_CHILD_COLLECTIONS = ('comments', 'reacts')


@dataclass
class MigrationReport:
    collection: str
    scanned: int = 0
    migrated: int = 0


class MigrationService:

    def __init__(self, store, timezone_name: str = 'UTC'):
        self.store = store
        self.zone = DateTimeUtils.get_timezone(timezone_name)

    def plan_update(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        한 문서에 적용할 update 딕셔너리를 계산합니다. 바꿀 것이 없으면 빈 딕셔너리.
        현재 필드가 이미 있으면 그 값을 유지하고 레거시 필드만 제거합니다.
        """
        update: Dict[str, Any] = {}
        for legacy, canonical in LEGACY_FIELD_MAP.get(collection, {}).items():
            if legacy not in data:
                continue
            if data.get(canonical) is None:
                update[canonical] = data[legacy]
            update[legacy] = firestore.DELETE_FIELD

        merged = {**data, **{k: v for k, v in update.items() if v is not firestore.DELETE_FIELD}}

        for link_field in LEDGER_LINK_FIELDS.get(collection, ()):
            if merged.get(link_field) is None:
                update[link_field] = ''

        if collection == 'contributions' and not merged.get('monthYear'):
            transaction_date = DateTimeUtils.from_firestore(merged.get('transactionDate'))
            if transaction_date is not None:
                update['monthYear'] = month_year_key(transaction_date, self.zone)

        return update

    def _collect(self, collection: str, docs) -> Tuple[int, List[tuple]]:
        scanned, operations = 0, []
        for doc in docs:
            scanned += 1
            update = self.plan_update(collection, doc.to_dict() or {})
            if update:
                operations.append(('update', doc.reference, update))
        return scanned, operations

    def migrate_collection(self, name: str, dry_run: bool = False) -> MigrationReport:
        """
        컬렉션의 모든 문서에서 레거시 필드를 현재 필드명으로 옮깁니다.
        posts는 하위 comments/reacts 문서까지 함께 처리합니다.
        """
        if name not in LEGACY_FIELD_MAP or name == 'post_children':
            raise ValueError(f"마이그레이션 대상이 아닌 컬렉션입니다: {name}")

        report = MigrationReport(collection=name)
        collection_ref = self.store.collection(name)
        docs = list(collection_ref.stream())
        report.scanned, operations = self._collect(name, docs)

        if name == 'posts':
            for post_doc in docs:
                for sub in POST_CHILD_COLLECTIONS:
                    scanned, child_operations = self._collect(
                        'post_children', post_doc.reference.collection(sub).stream()
                    )
                    report.scanned += scanned
                    operations.extend(child_operations)

        report.migrated = len(operations)
        if dry_run:
            logger.info(f"[dry-run] {name}: {report.scanned}건 중 {report.migrated}건 변환 예정")
            return report

        commit_in_batches(self.store, operations)
        logger.info(f"레거시 필드 변환 완료 {name}: {report.scanned}건 중 {report.migrated}건 변환")
        return report
