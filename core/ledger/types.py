"""
장부 기본 데이터 정의

시스템 계좌와 기본 카테고리 목록 (스키마 초기화, 회계연도 생성에서 사용)
"""

from core.constants import AccountIds
from core.types import CategoryType


# 시스템 계좌 (회계연도 공통)
INITIAL_ACCOUNTS: list[tuple[int, str]] = [
    # (account_id, name)
    (AccountIds.CASH, "現金"),
    (AccountIds.BANK, "銀行"),
]

ACCOUNT_IDS: tuple[int, ...] = tuple(account_id for account_id, _ in INITIAL_ACCOUNTS)


# 기본 카테고리 (이전 연도에서 복사하지 않을 때)
DEFAULT_INCOME_CATEGORIES: list[str] = [
    "会費",
    "寄付",
    "助成金",
    "イベント収入",
    "その他収入",
]

DEFAULT_EXPENSE_CATEGORIES: list[str] = [
    "交通費",
    "食費",
    "備品購入",
    "会場費",
    "印刷費",
    "通信費",
    "イベント費用",
    "その他支出",
]


def default_categories() -> list[tuple[str, CategoryType, int]]:
    """기본 카테고리 목록 (name, type, sort_order)

    sort_order는 유형별로 1부터 시작.
    """
    result: list[tuple[str, CategoryType, int]] = []
    for i, name in enumerate(DEFAULT_INCOME_CATEGORIES, start=1):
        result.append((name, CategoryType.INCOME, i))
    for i, name in enumerate(DEFAULT_EXPENSE_CATEGORIES, start=1):
        result.append((name, CategoryType.EXPENSE, i))
    return result
