# app/api/dashboard/schemas.py
from marshmallow import Schema, fields


class FinancialBucketSchema(Schema):
    """차트용 월별 버킷 (JAN..DEC)"""
    month = fields.Str()
    collections = fields.Decimal(as_string=True)
    expenses = fields.Decimal(as_string=True)


class YearOverviewSchema(Schema):
    year = fields.Int()
    total_collections = fields.Decimal(as_string=True)
    total_expenses = fields.Decimal(as_string=True)
    net_balance = fields.Decimal(as_string=True)
    months = fields.List(fields.Nested(FinancialBucketSchema))
