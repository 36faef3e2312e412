# app/api/contributions/schemas.py
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from app.models.member import MemberStatus


def drop_blank_fields(data):
    """multipart 폼의 빈 문자열 필드는 전달되지 않은 것으로 취급합니다."""
    if hasattr(data, 'to_dict'):
        data = data.to_dict()
    return {key: value for key, value in (data or {}).items() if not (isinstance(value, str) and not value.strip())}


# --- API 요청 스키마 ---

class PaymentCreateSchema(Schema):
    """POST /api/contributions 요청(multipart 폼)의 유효성을 검사합니다."""
    class Meta:
        unknown = EXCLUDE

    account_number = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    recipient = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    transaction_date = fields.Str(required=True)
    amount = fields.Decimal(allow_none=True, load_default=None)
    payment_method = fields.Str(load_default='Cash Payment', validate=validate.Length(min=1, max=100))

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return drop_blank_fields(data)


class MonthQuerySchema(Schema):
    """GET /api/contributions?month_year=June 2025"""
    class Meta:
        unknown = EXCLUDE

    month_year = fields.Str(required=True, validate=validate.Length(min=1))


class SummaryQuerySchema(Schema):
    """GET /api/contributions/summary?year=2025&month=6"""
    class Meta:
        unknown = EXCLUDE

    year = fields.Int(required=True, validate=validate.Range(min=1900, max=9999))
    month = fields.Int(required=True, validate=validate.Range(min=1, max=12))


class DuesUpdateSchema(Schema):
    """PUT /api/contributions/dues"""
    amount = fields.Decimal(required=True)


# --- API 응답 스키마 ---

class MemberLookupSchema(Schema):
    member_id = fields.Str()
    account_number = fields.Str()
    # 이름이 비어 있는 회원은 화면에 N/A로 표시합니다.
    display_name = fields.Function(lambda lookup: lookup.display_name or 'N/A')
    status = fields.Enum(MemberStatus, by_value=True)
    suggested_amount = fields.Decimal(as_string=True)


class ContributionResponseSchema(Schema):
    """납부 기록 응답. 금액은 정밀도 유지를 위해 문자열로 직렬화합니다."""
    contribution_id = fields.Str()
    member_id = fields.Str()
    account_number = fields.Str()
    member_name = fields.Str()
    amount = fields.Decimal(as_string=True, allow_none=True)
    recipient = fields.Str()
    payment_method = fields.Str()
    month_year = fields.Str()
    transaction_date = fields.DateTime()
    proof_url = fields.Str()
    created_at = fields.DateTime()


class LedgerSummarySchema(Schema):
    year = fields.Int()
    month_year = fields.Str()
    total_collections = fields.Decimal(as_string=True)
    paid_member_count = fields.Int()
    unpaid_member_count = fields.Int()
    total_members = fields.Int()
