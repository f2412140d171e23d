"""
Answer Dispute Service
======================

Purpose
-------
Lets a signed-in user contest an answer the checker rejected, and lets an
admin resolve the contest. An approved dispute becomes an accepted-answer
override with source DISPUTE.

Domain
------
- One user holds at most one PENDING dispute per (question, mode, game);
  the unique ``pending_key`` enforces it
- Resolution is a conditional UPDATE on ``status = PENDING``: exactly one
  resolver wins, every later attempt fails with ``InvalidOperationError``
- Approval and its override commit or roll back together
- Recorded history is never re-graded; the override only affects answers
  checked after approval

Events
------
- ``answers.dispute_submitted`` after a dispute is stored
- ``answers.dispute_resolved`` after approval or rejection commits
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import update

from src.core.database.base import new_id, utc_now
from src.core.database.service import DatabaseService
from src.core.logging.logger import LogContext, get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import (
    AnswerDispute,
    DisputeMode,
    DisputeStatus,
    OverrideSource,
    Question,
    Round,
)
from src.database.models.content import pending_dispute_key
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    QuestionNotFoundError,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.event.bus import EventBus
    from src.modules.answers.override_service import AnswerOverrideService


MAX_DISPUTE_ANSWER_LENGTH = 500
DEFAULT_LIST_LIMIT = 50


class AnswerDisputeService(BaseService):
    """
    Public Methods
    --------------
    - submit_dispute() -> Open a dispute for a rejected answer
    - approve_dispute() -> Accept the answer as an override
    - reject_dispute() -> Close the dispute without changes
    - list_disputes() -> Disputes in a status, oldest first
    - get_pending_count() -> Size of the review queue
    """

    def __init__(
        self,
        config: Any,
        event_bus: Optional[EventBus],
        logger: Logger,
        override_service: AnswerOverrideService,
    ) -> None:
        super().__init__(config, event_bus, logger)
        self._overrides = override_service
        self._repo = BaseRepository(
            AnswerDispute, get_logger(f"{__name__}.AnswerDisputeRepository")
        )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def list_disputes(
        self,
        status: DisputeStatus | str = DisputeStatus.PENDING,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[AnswerDispute]:
        status = InputValidator.validate_enum(status, "status", DisputeStatus)
        limit = InputValidator.validate_positive_integer(limit, "limit")

        async with DatabaseService.get_session() as session:
            return await self._repo.find_many_where(
                session,
                AnswerDispute.status == status,
                order_by=[AnswerDispute.created_at, AnswerDispute.id],
                limit=limit,
            )

    async def get_pending_count(self) -> int:
        async with DatabaseService.get_session() as session:
            return await self._repo.count(
                session, AnswerDispute.status == DisputeStatus.PENDING
            )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def submit_dispute(
        self,
        user_id: str,
        question_id: str,
        user_answer: str,
        mode: DisputeMode | str,
        round: Optional[Round | str] = None,
        game_id: Optional[str] = None,
        system_was_correct: bool = False,
    ) -> AnswerDispute:
        """
        Open a dispute.

        ``round`` defaults to the round the question aired in.

        Raises:
            QuestionNotFoundError: If the question does not exist
            InvalidOperationError: If the same answer already has a pending dispute
            ValidationError: On malformed input
        """
        user_id = InputValidator.validate_entity_id(user_id, "user_id")
        question_id = InputValidator.validate_entity_id(question_id, "question_id")
        user_answer = InputValidator.validate_string(
            user_answer, "user_answer", min_length=1, max_length=MAX_DISPUTE_ANSWER_LENGTH
        )
        mode = InputValidator.validate_enum(mode, "mode", DisputeMode)
        if game_id is not None:
            game_id = InputValidator.validate_entity_id(game_id, "game_id")
        system_was_correct = InputValidator.validate_bool(
            system_was_correct, "system_was_correct"
        )

        self.log_operation(
            "submit_dispute", user_id=user_id, question_id=question_id, mode=mode.value
        )

        dispute_id = new_id()
        async with DatabaseService.get_transaction() as session:
            question = await session.get(Question, question_id)
            if question is None:
                raise QuestionNotFoundError(question_id)
            dispute_round = (
                InputValidator.validate_enum(round, "round", Round)
                if round is not None
                else question.round
            )

            result = await session.execute(
                DatabaseService.dialect_insert(session, AnswerDispute.__table__)
                .values(
                    id=dispute_id,
                    user_id=user_id,
                    question_id=question_id,
                    game_id=game_id,
                    mode=mode,
                    round=dispute_round,
                    user_answer=user_answer,
                    system_was_correct=system_was_correct,
                    status=DisputeStatus.PENDING,
                    pending_key=pending_dispute_key(user_id, question_id, mode, game_id),
                )
                .on_conflict_do_nothing(index_elements=["pending_key"])
            )
            if result.rowcount != 1:
                raise InvalidOperationError(
                    "submit_dispute", "A pending dispute already exists for this answer"
                )
            dispute = await session.get(AnswerDispute, dispute_id)

        await self.emit_event(
            "answers.dispute_submitted",
            {
                "dispute_id": dispute.id,
                "user_id": user_id,
                "question_id": question_id,
                "mode": mode.value,
            },
        )
        return dispute

    async def approve_dispute(
        self,
        dispute_id: str,
        admin_id: str,
        admin_comment: Optional[str] = None,
        override_text: Optional[str] = None,
    ) -> AnswerDispute:
        """
        Approve a pending dispute and accept its answer.

        The override text is ``override_text`` when given, else the disputed
        answer; an existing identical override is reused.

        Raises:
            NotFoundError: Unknown dispute
            InvalidOperationError: Dispute already resolved
            ValidationError: Override text empty after normalization (the
                dispute stays pending)
        """
        return await self._resolve(
            dispute_id, admin_id, DisputeStatus.APPROVED, admin_comment, override_text
        )

    async def reject_dispute(
        self,
        dispute_id: str,
        admin_id: str,
        admin_comment: Optional[str] = None,
    ) -> AnswerDispute:
        """
        Raises:
            NotFoundError: Unknown dispute
            InvalidOperationError: Dispute already resolved
        """
        return await self._resolve(dispute_id, admin_id, DisputeStatus.REJECTED, admin_comment)

    # ========================================================================
    # INTERNAL
    # ========================================================================

    async def _resolve(
        self,
        dispute_id: str,
        admin_id: str,
        status: DisputeStatus,
        admin_comment: Optional[str],
        override_text: Optional[str] = None,
    ) -> AnswerDispute:
        action = "approve_dispute" if status is DisputeStatus.APPROVED else "reject_dispute"
        dispute_id = InputValidator.validate_entity_id(dispute_id, "dispute_id")
        admin_id = InputValidator.validate_entity_id(admin_id, "admin_id")

        async with LogContext(user_id=admin_id, operation=action):
            self.log_operation(action, dispute_id=dispute_id, admin_id=admin_id)

            async with DatabaseService.get_transaction() as session:
                now = utc_now()
                result = await session.execute(
                    update(AnswerDispute)
                    .where(
                        AnswerDispute.id == dispute_id,
                        AnswerDispute.status == DisputeStatus.PENDING,
                    )
                    .values(
                        status=status,
                        pending_key=None,
                        admin_id=admin_id,
                        admin_comment=admin_comment,
                        resolved_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                dispute = await session.get(AnswerDispute, dispute_id, populate_existing=True)
                if dispute is None:
                    raise NotFoundError("AnswerDispute", dispute_id)
                if result.rowcount != 1:
                    raise InvalidOperationError(action, "Dispute has already been resolved")

                if status is DisputeStatus.APPROVED:
                    await self._accept_answer(session, dispute, admin_id, admin_comment, override_text)

            self.log.info(
                "Dispute resolved",
                extra={
                    "dispute_id": dispute_id,
                    "status": status.value,
                    "override_id": dispute.override_id,
                },
            )

        await self.emit_event(
            "answers.dispute_resolved",
            {
                "dispute_id": dispute.id,
                "user_id": dispute.user_id,
                "question_id": dispute.question_id,
                "status": status.value,
                "override_id": dispute.override_id,
                "admin_id": admin_id,
            },
        )
        return dispute

    async def _accept_answer(
        self,
        session: AsyncSession,
        dispute: AnswerDispute,
        admin_id: str,
        admin_comment: Optional[str],
        override_text: Optional[str],
    ) -> None:
        override = await self._overrides.add_override(
            dispute.question_id,
            override_text if override_text is not None else dispute.user_answer,
            admin_id,
            OverrideSource.DISPUTE,
            notes=admin_comment,
            session=session,
        )
        dispute.override_id = override.id
