"""
Category 서비스

회계연도별 카테고리 추가/이름 변경/삭제.
거래의 category는 이름 문자열 그대로 저장되므로 이름 변경/삭제가 기존 거래에 영향을 주지 않는다.
"""

import logging

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.errors import NotFoundError, ValidationError
from core.domain.models import Category
from core.ledger import LedgerStore
from core.types import CategoryType

logger = logging.getLogger(__name__)


class CategoryService:
    """Category 서비스

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self.store = LedgerStore(db)

    async def list_categories(
        self,
        fiscal_year_id: int,
        category_type: CategoryType | None = None,
    ) -> list[Category]:
        return await self.store.list_categories(fiscal_year_id, category_type)

    async def _get(self, category_id: int) -> Category:
        category = await self.store.get_category(category_id)
        if category is None:
            raise NotFoundError(f"カテゴリーが見つかりません: {category_id}")
        return category

    async def add_category(
        self,
        fiscal_year_id: int,
        name: str,
        category_type: CategoryType,
    ) -> Category:
        """카테고리 추가 (같은 유형의 마지막 순서로)

        Raises:
            ValidationError: 이름 없음
            NotFoundError: 연도 없음
        """
        name = name.strip()
        if not name:
            raise ValidationError("カテゴリー名を入力してください")
        if await self.store.get_fiscal_year(fiscal_year_id) is None:
            raise NotFoundError(f"年度が見つかりません: {fiscal_year_id}")

        async with self.db.transaction():
            category = await self.store.insert_category(fiscal_year_id, name, category_type)

        logger.info(f"카테고리 추가: {category.type.value} {category.name}")
        return category

    async def rename_category(self, category_id: int, name: str) -> Category:
        """Raises: ValidationError, NotFoundError"""
        name = name.strip()
        if not name:
            raise ValidationError("カテゴリー名を入力してください")
        category = await self._get(category_id)

        async with self.db.transaction():
            await self.store.rename_category(category_id, name)

        category.name = name
        return category

    async def delete_category(self, category_id: int) -> None:
        """Raises: NotFoundError"""
        category = await self._get(category_id)

        async with self.db.transaction():
            await self.store.delete_category(category_id)

        logger.info(f"카테고리 삭제: {category.type.value} {category.name}")
