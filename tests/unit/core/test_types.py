"""
core/types.py 테스트

Enum 값과 Actor 생성 확인
"""

import pytest

from core.types import (
    Actor,
    ActorKind,
    CategoryType,
    HistoryAction,
    ProposalStatus,
    SystemAction,
    TransactionKind,
    VoteChoice,
)


class TestEnums:
    """Enum 값 테스트 (DB에 저장되는 문자열)"""

    def test_transaction_kind_values(self) -> None:
        assert [k.value for k in TransactionKind] == ["income", "expense", "transfer"]

    def test_category_type_has_no_transfer(self) -> None:
        assert {c.value for c in CategoryType} == {"income", "expense"}

    def test_history_actions(self) -> None:
        assert {a.value for a in HistoryAction} == {"created", "updated", "deleted", "restored"}

    def test_proposal_statuses(self) -> None:
        assert {s.value for s in ProposalStatus} == {
            "pending",
            "approved",
            "rejected",
            "expired",
            "executed",
        }

    def test_vote_choices(self) -> None:
        assert VoteChoice("approve") == VoteChoice.APPROVE
        assert VoteChoice("reject") == VoteChoice.REJECT

    def test_system_actions(self) -> None:
        assert SystemAction.FISCAL_YEAR_DELETED.value == "fiscal_year_deleted"
        assert SystemAction.MEMBER_DELETED.value == "member_deleted"

    def test_str_enum_compares_to_string(self) -> None:
        assert TransactionKind.INCOME == "income"


class TestActor:
    """Actor 테스트"""

    def test_member_actor(self) -> None:
        actor = Actor.member("user-1", "山田")

        assert actor.kind == ActorKind.MEMBER.value
        assert actor.id == "user-1"
        assert actor.name == "山田"

    def test_system_actor(self) -> None:
        actor = Actor.system("admin")

        assert actor.kind == ActorKind.SYSTEM.value
        assert actor.id == "system:admin"

    def test_frozen(self) -> None:
        actor = Actor.member("user-1", "山田")

        with pytest.raises(AttributeError):
            actor.name = "other"  # type: ignore
