"""
장부 모듈

잔고 엔진, 장부 저장소, 스키마 초기화 제공
"""

from core.ledger.balance import (
    derive_balance,
    derive_balances,
    forward_effects,
    reverse_effects,
    signed_effect,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.types import ACCOUNT_IDS, INITIAL_ACCOUNTS, default_categories

__all__ = [
    # Balance
    "forward_effects",
    "reverse_effects",
    "signed_effect",
    "derive_balance",
    "derive_balances",
    # Store
    "LedgerStore",
    "init_ledger_schema",
    # Types
    "ACCOUNT_IDS",
    "INITIAL_ACCOUNTS",
    "default_categories",
]
