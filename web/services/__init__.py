"""
Web 서비스 패키지

비즈니스 로직 처리
"""

from web.services.category_service import CategoryService
from web.services.dashboard_service import DashboardService
from web.services.fiscal_year_service import FiscalYearService
from web.services.member_service import MemberService
from web.services.proposal_service import ProposalService
from web.services.transaction_service import TransactionService

__all__ = [
    "CategoryService",
    "DashboardService",
    "FiscalYearService",
    "MemberService",
    "ProposalService",
    "TransactionService",
]
