"""
잔고 엔진

거래 유형별 계좌 잔고 변화량 계산.

| type     | account_id | from_account_id | to_account_id |
|----------|------------|-----------------|---------------|
| income   | +amount    |                 |               |
| expense  | -amount    |                 |               |
| transfer |            | -amount         | +amount       |

역적용(수정 전 되돌리기, 삭제)은 항상 정방향 효과의 부호 반전.
"""

from collections.abc import Iterable
from decimal import Decimal

from core.domain.models import FiscalYear, Transaction
from core.types import TransactionKind


def forward_effects(tx: Transaction) -> dict[int, Decimal]:
    """정방향 효과 {account_id: 부호 있는 변화량}

    Args:
        tx: 거래

    Returns:
        계좌별 변화량 (transfer는 두 계좌, 그 외는 한 계좌)

    Raises:
        ValueError: 계좌 정보가 거래 유형과 맞지 않음
    """
    amount = tx.amount

    if tx.type == TransactionKind.TRANSFER:
        if tx.from_account_id is None or tx.to_account_id is None:
            raise ValueError(f"Transfer without account pair: {tx.id}")
        if tx.from_account_id == tx.to_account_id:
            raise ValueError(f"Transfer to same account: {tx.id}")
        return {
            tx.from_account_id: -amount,
            tx.to_account_id: amount,
        }

    if tx.account_id is None:
        raise ValueError(f"{tx.type.value} without account: {tx.id}")

    if tx.type == TransactionKind.INCOME:
        return {tx.account_id: amount}
    return {tx.account_id: -amount}


def reverse_effects(tx: Transaction) -> dict[int, Decimal]:
    """역방향 효과 (정방향의 덧셈 역원)"""
    return {account_id: -delta for account_id, delta in forward_effects(tx).items()}


def signed_effect(tx: Transaction, account_id: int) -> Decimal:
    """특정 계좌에 대한 거래 효과 (관련 없으면 0)"""
    return forward_effects(tx).get(account_id, Decimal("0"))


def derive_balance(
    fiscal_year: FiscalYear,
    transactions: Iterable[Transaction],
    account_id: int,
) -> Decimal:
    """회계연도 기준 잔고 계산

    기초 잔고 + 해당 연도의 삭제되지 않은 거래 효과 합계.
    캐시된 Account.balance는 사용하지 않는다.
    """
    balance = fiscal_year.starting_balance(account_id)
    for tx in transactions:
        if tx.is_deleted or tx.fiscal_year_id != fiscal_year.id:
            continue
        balance += signed_effect(tx, account_id)
    return balance


def derive_balances(
    fiscal_year: FiscalYear,
    transactions: Iterable[Transaction],
    account_ids: Iterable[int],
) -> dict[int, Decimal]:
    """여러 계좌 잔고를 한 번에 계산"""
    tx_list = list(transactions)
    return {
        account_id: derive_balance(fiscal_year, tx_list, account_id)
        for account_id in account_ids
    }
