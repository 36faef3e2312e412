# app/api/expenses/test_expense_services.py
"""
지출 원장 서비스 테스트

사용법: python -m pytest app/api/expenses/test_expense_services.py -v
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from app.core.errors import ExpenseNotFoundError, UploadError, ValidationError


def test_record_expense_without_receipt(expense_service, fake_db):
    record = expense_service.record_expense('Street lights', '1,200.00', '2025-03-10')

    data = fake_db.data(f"expenses/{record.expense_id}")
    assert data['purpose'] == 'Street lights'
    assert data['amount'] == 1200.0
    assert data['receiptUrl'] == ''
    assert data['transactionDate'] == datetime(2025, 3, 10, tzinfo=timezone.utc)
    assert 'updatedAt' not in data


def test_record_expense_uploads_receipt(expense_service, fake_bucket, upload_file):
    record = expense_service.record_expense('Guard salary', '500', '2025-03-10',
                                            receipt_file=upload_file('receipt.pdf', content_type='application/pdf'))

    path = next(iter(fake_bucket.blobs))
    assert path.startswith('expense_proofs/')
    assert path.endswith('_receipt.pdf')
    assert record.receipt_url.endswith(path)


def test_record_expense_upload_failure_writes_nothing(expense_service, fake_db, fake_bucket, upload_file):
    fake_bucket.fail_uploads = True

    with pytest.raises(UploadError):
        expense_service.record_expense('Guard salary', '500', '2025-03-10', receipt_file=upload_file())
    assert fake_db.children('expenses') == []


def test_record_expense_write_failure_removes_receipt(expense_service, fake_db, fake_bucket, upload_file):
    fake_db.failing_collections.add('expenses')

    with pytest.raises(RuntimeError):
        expense_service.record_expense('Guard salary', '500', '2025-03-10', receipt_file=upload_file())
    assert fake_bucket.blobs == {}


@pytest.mark.parametrize('purpose, amount, transaction_date', [
    ('', '100', '2025-03-10'),
    ('Paint', '0', '2025-03-10'),
    ('Paint', 'abc', '2025-03-10'),
    ('Paint', '100', 'yesterday'),
])
def test_record_expense_validation(expense_service, fake_db, purpose, amount, transaction_date):
    with pytest.raises(ValidationError):
        expense_service.record_expense(purpose, amount, transaction_date)
    assert fake_db.children('expenses') == []


def test_update_expense_without_new_receipt_keeps_url(expense_service, fake_db, upload_file):
    """새 영수증 없이 수정하면 기존 receiptUrl이 그대로 유지되어야 함"""
    created = expense_service.record_expense('Paint', '100', '2025-03-10', receipt_file=upload_file())

    updated = expense_service.update_expense(created.expense_id, 'Paint and brushes', '150', '2025-03-11')

    data = fake_db.data(f"expenses/{created.expense_id}")
    assert data['receiptUrl'] == created.receipt_url
    assert updated.receipt_url == created.receipt_url
    assert data['purpose'] == 'Paint and brushes'
    assert data['amount'] == 150.0
    assert data['createdAt'] == created.created_at
    assert data['updatedAt'] is not None


def test_update_expense_with_existing_receipt_url(expense_service, fake_db):
    created = expense_service.record_expense('Paint', '100', '2025-03-10')

    expense_service.update_expense(created.expense_id, 'Paint', '100', '2025-03-10',
                                   existing_receipt_url='https://example.com/old.jpg')

    assert fake_db.data(f"expenses/{created.expense_id}")['receiptUrl'] == 'https://example.com/old.jpg'


def test_update_expense_new_receipt_keeps_old_blob(expense_service, fake_bucket, upload_file):
    """영수증 교체 시 이전 Blob은 삭제하지 않음"""
    created = expense_service.record_expense('Paint', '100', '2025-03-10', receipt_file=upload_file('old.jpg'))

    updated = expense_service.update_expense(created.expense_id, 'Paint', '100', '2025-03-10',
                                             receipt_file=upload_file('new.jpg'))

    assert updated.receipt_url != created.receipt_url
    assert len(fake_bucket.blobs) == 2


def test_update_missing_expense(expense_service):
    with pytest.raises(ExpenseNotFoundError):
        expense_service.update_expense('nope', 'Paint', '100', '2025-03-10')


def test_get_expense(expense_service):
    created = expense_service.record_expense('Paint', '100', '2025-03-10')

    fetched = expense_service.get_expense(created.expense_id)

    assert fetched.purpose == 'Paint'
    assert fetched.amount == Decimal('100.00')
    with pytest.raises(ExpenseNotFoundError):
        expense_service.get_expense('nope')


def test_aggregate_year_skips_bad_amounts(expense_service, fake_db):
    expense_service.record_expense('Paint', '100', '2025-03-10')
    expense_service.record_expense('Water', '20.25', '2025-11-30')
    expense_service.record_expense('Old', '999', '2024-12-31')
    fake_db.document('expenses/legacy-negative').set({
        'purpose': 'Broken', 'amount': -50, 'transactionDate': datetime(2025, 5, 1, tzinfo=timezone.utc),
    })
    fake_db.document('expenses/legacy-text').set({
        'purpose': 'Broken', 'amount': 'n/a', 'transactionDate': datetime(2025, 5, 2, tzinfo=timezone.utc),
    })

    assert expense_service.aggregate_year(2025) == Decimal('120.25')
    assert len(expense_service.list_year(2025)) == 4
