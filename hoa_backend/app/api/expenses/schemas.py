# app/api/expenses/schemas.py
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from app.api.contributions.schemas import drop_blank_fields


class ExpenseWriteSchema(Schema):
    """POST /api/expenses, PUT /api/expenses/{expense_id} 요청(multipart 폼)"""
    class Meta:
        unknown = EXCLUDE

    purpose = fields.Str(required=True, validate=validate.Length(min=1, max=500))
    amount = fields.Decimal(required=True)
    transaction_date = fields.Str(required=True)
    # 수정 시 새 영수증이 없으면 유지할 기존 URL
    existing_receipt_url = fields.Str(allow_none=True, load_default=None)

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return drop_blank_fields(data)


class YearQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    year = fields.Int(required=True, validate=validate.Range(min=1900, max=9999))


class ExpenseResponseSchema(Schema):
    expense_id = fields.Str()
    purpose = fields.Str()
    amount = fields.Decimal(as_string=True, allow_none=True)
    transaction_date = fields.DateTime()
    receipt_url = fields.Str()
    created_at = fields.DateTime()
    updated_at = fields.DateTime(allow_none=True)
