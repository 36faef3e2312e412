# app/api/dashboard/routes.py
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.api.dashboard.schemas import FinancialBucketSchema, YearOverviewSchema


dashboard_bp = Blueprint('dashboard_bp', __name__)


@dashboard_bp.route('/<int:year>', methods=['GET'])
@jwt_required()
def get_year_overview(year: int):
    """
    대시보드 화면 데이터: 연간 납부/지출 합계, 순잔액, 월별 시계열
    """
    dashboard_service = current_app.services['dashboard']
    return jsonify(YearOverviewSchema().dump(dashboard_service.year_overview(year))), 200


@dashboard_bp.route('/<int:year>/monthly', methods=['GET'])
@jwt_required()
def get_monthly_time_series(year: int):
    dashboard_service = current_app.services['dashboard']
    buckets = dashboard_service.monthly_time_series(year)
    return jsonify({"year": year, "months": FinancialBucketSchema(many=True).dump(buckets)}), 200


@dashboard_bp.route('/<int:year>/balance', methods=['GET'])
@jwt_required()
def get_net_balance(year: int):
    dashboard_service = current_app.services['dashboard']
    return jsonify({"year": year, "net_balance": str(dashboard_service.net_balance(year))}), 200
