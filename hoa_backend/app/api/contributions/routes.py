# app/api/contributions/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.api.contributions.schemas import (
    PaymentCreateSchema, MonthQuerySchema, SummaryQuerySchema, DuesUpdateSchema,
    MemberLookupSchema, ContributionResponseSchema, LedgerSummarySchema,
)
from app.core.context import caller_from_jwt
from app.services.storage_service import UploadedFile


contributions_bp = Blueprint('contributions_bp', __name__)


@contributions_bp.route('/members/<string:account_number>', methods=['GET'])
@jwt_required()
def lookup_member(account_number: str):
    """
    계좌번호로 회원을 조회하여 납부 화면에 이름과 기본 납부액을 채워줍니다.
    """
    contribution_service = current_app.services['contributions']
    member = contribution_service.lookup_member(account_number)
    return jsonify(MemberLookupSchema().dump(member)), 200


@contributions_bp.route('', methods=['POST'])
@jwt_required()
def record_payment():
    """
    회비 납부를 기록합니다. (multipart/form-data, 증빙 파일 필드명: 'proof')
    - 증빙 업로드가 실패하면 기록은 생성되지 않습니다.
    """
    contribution_service = current_app.services['contributions']
    caller = caller_from_jwt()
    data = PaymentCreateSchema().load(request.form)
    proof_file = UploadedFile.from_file_storage(request.files.get('proof'))

    record = contribution_service.record_payment(
        account_number=data['account_number'],
        recipient=data['recipient'],
        transaction_date=data['transaction_date'],
        amount=data.get('amount'),
        proof_file=proof_file,
        payment_method=data['payment_method'],
        caller=caller,
    )
    return jsonify(ContributionResponseSchema().dump(record)), 201


@contributions_bp.route('', methods=['GET'])
@jwt_required()
def query_month():
    """monthYear 키('June 2025')로 해당 월의 납부 기록을 조회합니다."""
    contribution_service = current_app.services['contributions']
    args = MonthQuerySchema().load(request.args)
    records = contribution_service.query_month(args['month_year'])
    return jsonify({
        "month_year": args['month_year'],
        "contributions": ContributionResponseSchema(many=True).dump(records),
    }), 200


@contributions_bp.route('/summary', methods=['GET'])
@jwt_required()
def get_summary():
    """연간 납부 합계와 지정한 월의 납부/미납 회원 수"""
    contribution_service = current_app.services['contributions']
    args = SummaryQuerySchema().load(request.args)
    summary = contribution_service.aggregate_year(args['year'], args['month'])
    return jsonify(LedgerSummarySchema().dump(summary)), 200


@contributions_bp.route('/dues', methods=['GET'])
@jwt_required()
def get_monthly_dues():
    contribution_service = current_app.services['contributions']
    dues = contribution_service.get_monthly_dues()
    return jsonify({"amount": str(dues)}), 200


@contributions_bp.route('/dues', methods=['PUT'])
@jwt_required()
def set_monthly_dues():
    contribution_service = current_app.services['contributions']
    data = DuesUpdateSchema().load(request.get_json() or {})
    dues = contribution_service.set_monthly_dues(data['amount'], caller_from_jwt())
    return jsonify({"amount": str(dues)}), 200


@contributions_bp.route('/member-statuses/refresh', methods=['POST'])
@jwt_required()
def refresh_member_statuses():
    """
    이번 달 납부 여부로 회원 상태(Active/Inactive/New)를 다시 계산합니다.
    """
    contribution_service = current_app.services['contributions']
    try:
        updated = contribution_service.refresh_member_statuses()
        return jsonify({"updated": updated}), 200
    except Exception as e:
        logging.error(f"회원 상태 갱신 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "STATUS_REFRESH_FAILED", "message": "회원 상태 갱신 중 오류가 발생했습니다."}), 500
