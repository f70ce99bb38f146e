"""
스토리지 모듈

회원 / 초대 코드 / 시스템 이력 저장소 제공
(장부 테이블은 core.ledger.LedgerStore)
"""

from core.storage.member_store import MemberStore

__all__ = [
    "MemberStore",
]
