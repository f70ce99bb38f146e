"""
FiscalYear 서비스

회계연도 조회/생성/수정, 현재 연도 전환, 연도 기준 잔고와 결산 수치.

잔고 규칙:
- 과거 연도 잔고는 항상 거래 행에서 계산 (기초 잔고 + 삭제되지 않은 거래 효과 합계)
- accounts.balance는 현재 연도 기준 캐시이며, 연도 전환 시 계산값으로 맞춘다
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import AccountIds, Defaults
from core.domain.errors import NotFoundError, ValidationError
from core.domain.models import FiscalYear
from core.ledger import ACCOUNT_IDS, LedgerStore, default_categories, derive_balances
from core.types import TransactionKind

logger = logging.getLogger(__name__)


def next_fiscal_year_defaults(today: date | None = None) -> tuple[str, date, date]:
    """다음 회계연도 기본값 (4월 ~ 익년 3월)

    4월 이후면 다음 해, 3월 이전이면 올해 시작 연도.

    Returns:
        (name, start_date, end_date)
    """
    today = today or datetime.now(timezone.utc).date()
    start_month = Defaults.FISCAL_YEAR_START_MONTH
    year = today.year + 1 if today.month >= start_month else today.year

    start = date(year, start_month, 1)
    end = date(year + 1, start_month, 1) - timedelta(days=1)
    return f"{year}年度", start, end


async def derive_year_balances(store: LedgerStore, fiscal_year: FiscalYear) -> dict[int, Decimal]:
    """연도 기준 계좌별 잔고 (캐시 미사용)"""
    transactions = await store.list_transactions(fiscal_year.id)
    return derive_balances(fiscal_year, transactions, ACCOUNT_IDS)


async def reconcile_account_balances(store: LedgerStore, fiscal_year: FiscalYear | None) -> dict[int, Decimal]:
    """accounts.balance를 연도 계산값으로 맞춤

    호출자의 트랜잭션 안에서 실행. 연도가 없으면 0으로 초기화.
    """
    if fiscal_year is None:
        balances = {account_id: Decimal("0") for account_id in ACCOUNT_IDS}
    else:
        balances = await derive_year_balances(store, fiscal_year)

    for account_id, balance in balances.items():
        await store.set_balance(account_id, balance)
    return balances


@dataclass
class FiscalYearDraft:
    """회계연도 생성/수정 입력"""

    name: str
    start_date: date
    end_date: date
    starting_balance_cash: Decimal
    starting_balance_bank: Decimal

    def validate(self) -> None:
        """Raises: ValidationError"""
        if not self.name or not self.name.strip():
            raise ValidationError("年度名を入力してください")
        if self.start_date > self.end_date:
            raise ValidationError("開始日は終了日以前である必要があります")


class FiscalYearService:
    """FiscalYear 서비스

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self.store = LedgerStore(db)

    async def list_years(self) -> list[FiscalYear]:
        return await self.store.list_fiscal_years()

    async def get_year(self, fiscal_year_id: int) -> FiscalYear:
        """Raises: NotFoundError"""
        fiscal_year = await self.store.get_fiscal_year(fiscal_year_id)
        if fiscal_year is None:
            raise NotFoundError(f"年度が見つかりません: {fiscal_year_id}")
        return fiscal_year

    async def get_current(self) -> FiscalYear:
        """현재 회계연도

        Raises:
            NotFoundError: 회계연도가 하나도 없음
        """
        fiscal_year = await self.store.get_current_fiscal_year()
        if fiscal_year is None:
            raise NotFoundError("年度が登録されていません")
        return fiscal_year

    async def create_year(
        self,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        starting_balance_cash: Decimal | None = None,
        starting_balance_bank: Decimal | None = None,
        copy_categories_from: int | None = None,
    ) -> FiscalYear:
        """회계연도 생성

        - 이름/기간 미지정 시 다음 4월 ~ 3월 연도
        - 기초 잔고 미지정 시 현재 연도의 계산 잔고를 이월 (연도가 없으면 0)
        - 카테고리는 지정 연도에서 복사, 아니면 기본 카테고리
        - 첫 회계연도는 자동으로 현재 연도가 된다

        Raises:
            ValidationError: 기간 오류
            NotFoundError: 복사 원본 연도 없음
        """
        default_name, default_start, default_end = next_fiscal_year_defaults()

        async with self.db.transaction():
            current = await self.store.get_current_fiscal_year()
            carried: dict[int, Decimal] = {account_id: Decimal("0") for account_id in ACCOUNT_IDS}
            if current is not None and (starting_balance_cash is None or starting_balance_bank is None):
                carried = await derive_year_balances(self.store, current)

            draft = FiscalYearDraft(
                name=(name or default_name).strip(),
                start_date=start_date or default_start,
                end_date=end_date or default_end,
                starting_balance_cash=(
                    starting_balance_cash
                    if starting_balance_cash is not None
                    else carried[AccountIds.CASH]
                ),
                starting_balance_bank=(
                    starting_balance_bank
                    if starting_balance_bank is not None
                    else carried[AccountIds.BANK]
                ),
            )
            draft.validate()

            source_categories = None
            if copy_categories_from is not None:
                await self.get_year(copy_categories_from)
                source_categories = await self.store.list_categories(copy_categories_from)

            is_first = current is None

            fiscal_year = await self.store.insert_fiscal_year(
                name=draft.name,
                start_date=draft.start_date,
                end_date=draft.end_date,
                starting_balance_cash=draft.starting_balance_cash,
                starting_balance_bank=draft.starting_balance_bank,
                is_current=is_first,
            )

            if source_categories is not None:
                for category in source_categories:
                    await self.store.insert_category(
                        fiscal_year.id,
                        category.name,
                        category.type,
                        category.sort_order,
                    )
            else:
                for category_name, category_type, sort_order in default_categories():
                    await self.store.insert_category(
                        fiscal_year.id,
                        category_name,
                        category_type,
                        sort_order,
                    )

            if is_first:
                await reconcile_account_balances(self.store, fiscal_year)

        logger.info(
            "회계연도 생성",
            extra={
                "fiscal_year_id": fiscal_year.id,
                "fiscal_year_name": fiscal_year.name,
                "is_current": is_first,
            },
        )
        return fiscal_year

    async def update_year(self, fiscal_year_id: int, draft: FiscalYearDraft) -> FiscalYear:
        """회계연도 수정 (이름, 기간, 기초 잔고)

        현재 연도면 accounts.balance를 다시 맞춘다.

        Raises:
            NotFoundError: 연도 없음
            ValidationError: 기간 오류
        """
        fiscal_year = await self.get_year(fiscal_year_id)
        draft.validate()

        fiscal_year.name = draft.name.strip()
        fiscal_year.start_date = draft.start_date
        fiscal_year.end_date = draft.end_date
        fiscal_year.starting_balance_cash = draft.starting_balance_cash
        fiscal_year.starting_balance_bank = draft.starting_balance_bank

        async with self.db.transaction():
            await self.store.update_fiscal_year(fiscal_year)
            current = await self.store.get_current_fiscal_year()
            if current is not None and current.id == fiscal_year.id:
                await reconcile_account_balances(self.store, current)

        logger.info(f"회계연도 수정: {fiscal_year.id} {fiscal_year.name}")
        return fiscal_year

    async def set_current(self, fiscal_year_id: int) -> FiscalYear:
        """현재 회계연도 전환

        플래그 전환과 잔고 재계산을 한 트랜잭션으로 처리.

        Raises:
            NotFoundError: 연도 없음
        """
        fiscal_year = await self.get_year(fiscal_year_id)

        async with self.db.transaction():
            await self.store.set_current_flag(fiscal_year.id)
            balances = await reconcile_account_balances(self.store, fiscal_year)

        fiscal_year.is_current = True
        logger.info(
            "현재 회계연도 전환",
            extra={
                "fiscal_year_id": fiscal_year.id,
                "balances": {k: str(v) for k, v in balances.items()},
            },
        )
        return fiscal_year

    @staticmethod
    def contains(fiscal_year: FiscalYear, value: date | datetime) -> bool:
        """기록일이 연도 범위 안인지 (양 끝 포함)"""
        return fiscal_year.contains(value)

    async def balances(self, fiscal_year_id: int | None = None) -> dict[int, Decimal]:
        """연도 기준 계좌별 잔고 (미지정 시 현재 연도)"""
        if fiscal_year_id is None:
            fiscal_year = await self.get_current()
        else:
            fiscal_year = await self.get_year(fiscal_year_id)
        return await derive_year_balances(self.store, fiscal_year)

    async def statement(self, fiscal_year_id: int) -> dict[str, Any]:
        """결산 수치

        카테고리별 수입/지출 합계, 합계, 기초/기말 잔고.
        """
        fiscal_year = await self.get_year(fiscal_year_id)
        transactions = await self.store.list_transactions(fiscal_year.id)

        income_by_category: dict[str, Decimal] = {}
        expense_by_category: dict[str, Decimal] = {}
        for tx in transactions:
            if tx.type == TransactionKind.INCOME:
                key = tx.category or ""
                income_by_category[key] = income_by_category.get(key, Decimal("0")) + tx.amount
            elif tx.type == TransactionKind.EXPENSE:
                key = tx.category or ""
                expense_by_category[key] = expense_by_category.get(key, Decimal("0")) + tx.amount

        total_income = sum(income_by_category.values(), Decimal("0"))
        total_expense = sum(expense_by_category.values(), Decimal("0"))

        starting_total = fiscal_year.starting_balance_cash + fiscal_year.starting_balance_bank
        ending = derive_balances(fiscal_year, transactions, ACCOUNT_IDS)
        ending_total = sum(ending.values(), Decimal("0"))

        return {
            "fiscal_year": fiscal_year.to_dict(),
            "income_by_category": {k: str(v) for k, v in income_by_category.items()},
            "expense_by_category": {k: str(v) for k, v in expense_by_category.items()},
            "total_income": str(total_income),
            "total_expense": str(total_expense),
            "starting_balance": str(starting_total),
            "ending_balance": str(ending_total),
            "ending_balance_cash": str(ending[AccountIds.CASH]),
            "ending_balance_bank": str(ending[AccountIds.BANK]),
        }
