"""
core/ledger/types.py 테스트

시스템 계좌와 기본 카테고리
"""

from core.constants import AccountIds
from core.ledger.types import (
    ACCOUNT_IDS,
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    INITIAL_ACCOUNTS,
    default_categories,
)
from core.types import CategoryType


class TestInitialAccounts:
    def test_cash_and_bank(self) -> None:
        assert INITIAL_ACCOUNTS == [(AccountIds.CASH, "現金"), (AccountIds.BANK, "銀行")]
        assert ACCOUNT_IDS == (AccountIds.CASH, AccountIds.BANK)


class TestDefaultCategories:
    """기본 카테고리 테스트"""

    def test_counts(self) -> None:
        categories = default_categories()

        income = [c for c in categories if c[1] == CategoryType.INCOME]
        expense = [c for c in categories if c[1] == CategoryType.EXPENSE]
        assert len(income) == len(DEFAULT_INCOME_CATEGORIES)
        assert len(expense) == len(DEFAULT_EXPENSE_CATEGORIES)

    def test_sort_order_starts_at_one_per_type(self) -> None:
        categories = default_categories()

        income_orders = [order for _, kind, order in categories if kind == CategoryType.INCOME]
        expense_orders = [order for _, kind, order in categories if kind == CategoryType.EXPENSE]
        assert income_orders == list(range(1, len(income_orders) + 1))
        assert expense_orders == list(range(1, len(expense_orders) + 1))

    def test_names_unique(self) -> None:
        names = [name for name, _, _ in default_categories()]

        assert len(names) == len(set(names))
