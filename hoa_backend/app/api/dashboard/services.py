# app/api/dashboard/services.py
"""
대시보드 집계 서비스

납부/지출 원장을 조합하여 순잔액과 12개월 시계열을 계산합니다.
잔액은 어디에도 저장하지 않고 매번 두 원장에서 다시 계산합니다.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List

from app.api.contributions.services import ContributionService
from app.api.expenses.services import ExpenseService
from app.utils.money_utils import MONTH_LABELS, ZERO, month_label, round_money, sum_amounts

logger = logging.getLogger(__name__)


@dataclass
class FinancialBucket:
    """월별 집계 버킷. 조회할 때마다 새로 만들어지며 저장되지 않습니다."""
    month: str
    collections: Decimal = ZERO
    expenses: Decimal = ZERO


class DashboardService:
    """
    대시보드용 재무 집계를 담당하는 서비스
    """

    def __init__(self, contribution_service: ContributionService, expense_service: ExpenseService):
        self.contribution_service = contribution_service
        self.expense_service = expense_service

    @property
    def zone(self):
        return self.contribution_service.zone

    def _bucketize(self, contributions, expenses) -> List[FinancialBucket]:
        totals = {label: [ZERO, ZERO] for label in MONTH_LABELS}

        for record in contributions:
            if record.amount is None:
                logger.warning(f"금액이 올바르지 않은 납부 기록 제외: {record.contribution_id}")
                continue
            totals[month_label(record.transaction_date, self.zone)][0] += record.amount

        for record in expenses:
            if record.amount is None:
                logger.warning(f"금액이 올바르지 않은 지출 기록 제외: {record.expense_id}")
                continue
            totals[month_label(record.transaction_date, self.zone)][1] += record.amount

        return [
            FinancialBucket(month=label, collections=round_money(totals[label][0]), expenses=round_money(totals[label][1]))
            for label in MONTH_LABELS
        ]

    def monthly_time_series(self, year: int) -> List[FinancialBucket]:
        """
        JAN..DEC 12개 버킷을 항상 반환합니다. 활동이 없는 달도 0으로 채웁니다.

        Args:
            year: 집계할 연도

        Returns:
            길이 12의 FinancialBucket 리스트
        """
        return self._bucketize(
            self.contribution_service.list_year(year),
            self.expense_service.list_year(year),
        )

    def net_balance(self, year: int) -> Decimal:
        """순잔액 = 연간 납부 합계 - 연간 지출 합계"""
        return round_money(
            self.contribution_service.total_collections(year) - self.expense_service.aggregate_year(year)
        )

    def year_overview(self, year: int) -> Dict[str, Any]:
        """
        대시보드 한 화면에 필요한 값을 한 번의 원장 조회로 계산합니다.
        합계와 월별 시계열이 같은 조회 결과를 기준으로 합니다.
        """
        contributions = self.contribution_service.list_year(year)
        expenses = self.expense_service.list_year(year)

        total_collections = sum_amounts(contributions, 'contribution_id')
        total_expenses = sum_amounts(expenses, 'expense_id')
        return {
            'year': year,
            'total_collections': total_collections,
            'total_expenses': total_expenses,
            'net_balance': round_money(total_collections - total_expenses),
            'months': self._bucketize(contributions, expenses),
        }
