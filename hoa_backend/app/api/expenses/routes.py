# app/api/expenses/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.api.expenses.schemas import ExpenseWriteSchema, YearQuerySchema, ExpenseResponseSchema
from app.core.context import caller_from_jwt
from app.services.storage_service import UploadedFile


expenses_bp = Blueprint('expenses_bp', __name__)


@expenses_bp.route('', methods=['POST'])
@jwt_required()
def record_expense():
    """
    지출을 기록합니다. (multipart/form-data, 영수증 파일 필드명: 'receipt')
    """
    expense_service = current_app.services['expenses']
    data = ExpenseWriteSchema().load(request.form)
    record = expense_service.record_expense(
        purpose=data['purpose'],
        amount=data['amount'],
        transaction_date=data['transaction_date'],
        receipt_file=UploadedFile.from_file_storage(request.files.get('receipt')),
        caller=caller_from_jwt(),
    )
    return jsonify(ExpenseResponseSchema().dump(record)), 201


@expenses_bp.route('/<string:expense_id>', methods=['PUT'])
@jwt_required()
def update_expense(expense_id: str):
    """
    지출 기록을 수정합니다.
    - 새 영수증 파일이 없으면 기존 영수증 URL을 그대로 유지합니다.
    """
    expense_service = current_app.services['expenses']
    data = ExpenseWriteSchema().load(request.form)
    record = expense_service.update_expense(
        expense_id,
        purpose=data['purpose'],
        amount=data['amount'],
        transaction_date=data['transaction_date'],
        receipt_file=UploadedFile.from_file_storage(request.files.get('receipt')),
        existing_receipt_url=data.get('existing_receipt_url'),
        caller=caller_from_jwt(),
    )
    return jsonify(ExpenseResponseSchema().dump(record)), 200


@expenses_bp.route('/<string:expense_id>', methods=['GET'])
@jwt_required()
def get_expense(expense_id: str):
    expense_service = current_app.services['expenses']
    return jsonify(ExpenseResponseSchema().dump(expense_service.get_expense(expense_id))), 200


@expenses_bp.route('', methods=['GET'])
@jwt_required()
def list_expenses():
    """해당 연도의 지출 기록을 거래일 최신순으로 반환합니다."""
    expense_service = current_app.services['expenses']
    args = YearQuerySchema().load(request.args)
    records = sorted(expense_service.list_year(args['year']), key=lambda r: r.transaction_date, reverse=True)
    return jsonify({
        "year": args['year'],
        "expenses": ExpenseResponseSchema(many=True).dump(records),
    }), 200


@expenses_bp.route('/summary', methods=['GET'])
@jwt_required()
def get_summary():
    expense_service = current_app.services['expenses']
    args = YearQuerySchema().load(request.args)
    total = expense_service.aggregate_year(args['year'])
    return jsonify({"year": args['year'], "total_expenses": str(total)}), 200
