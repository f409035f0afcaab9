import logging
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from spaced_review.database import store_errors
from spaced_review.errors import NotFound, PartialUpdateInconsistency, reconciliation_logger
from spaced_review.interval_policy import utcnow
from spaced_review.models import User, RewardEvent, RewardAction
from spaced_review.schemas import RewardTotals
from datetime import datetime
from typing import List, Tuple

logger = logging.getLogger(__name__)

def append_reward(
    db: Session,
    user_id: int,
    action: RewardAction,
    points: int,
    description: str,
    now: datetime = None
) -> Tuple[RewardEvent, int]:
    """
    Append a reward event and bump the user's cached total.

    The increment is a single `points = points + n` UPDATE issued in the same
    transaction as the event insert, so concurrent awards for one user never
    lose updates. The caller owns the transaction and must commit.

    Returns:
        (event, new_total_points)
    """
    result = db.execute(
        update(User).where(User.id == user_id).values(points=User.points + points),
        execution_options={"synchronize_session": False}
    )
    if result.rowcount == 0:
        error = PartialUpdateInconsistency(
            f"Reward ledger append failed for user {user_id}: user record missing "
            f"({action.value}, {points} points)",
            user_id=user_id
        )
        reconciliation_logger.error(error.message)
        raise error

    event = RewardEvent(
        user_id=user_id,
        action=action,
        points=points,
        description=description,
        timestamp=now or utcnow()
    )
    db.add(event)
    db.flush()

    new_total = db.execute(select(User.points).where(User.id == user_id)).scalar_one()
    return event, new_total

def _ledger_sum(db: Session, user_id: int) -> Tuple[int, int]:
    """(sum of points, event count) straight from the history"""
    total, count = db.execute(
        select(func.coalesce(func.sum(RewardEvent.points), 0), func.count(RewardEvent.id))
        .where(RewardEvent.user_id == user_id)
    ).one()
    return int(total), int(count)

def get_reward_totals(db: Session, user_id: int) -> RewardTotals:
    """Current point total plus derived stats from the reward history"""
    with store_errors(db, "load reward totals"):
        current = db.execute(select(User.points).where(User.id == user_id)).scalar_one_or_none()
        if current is None:
            raise NotFound("User", user_id)
        total_earned, total_rewards = _ledger_sum(db, user_id)
        rows = db.execute(
            select(RewardEvent.action, func.count(RewardEvent.id))
            .where(RewardEvent.user_id == user_id)
            .group_by(RewardEvent.action)
        ).all()

    counts_by_action = {action.value: 0 for action in RewardAction}
    for action, count in rows:
        counts_by_action[RewardAction(action).value] = count

    consistent = current == total_earned
    if not consistent:
        reconciliation_logger.error(
            f"User {user_id} cached points {current} != ledger sum {total_earned}"
        )

    return RewardTotals(
        current_points=current,
        total_points_earned=total_earned,
        total_rewards=total_rewards,
        counts_by_action=counts_by_action,
        consistent=consistent
    )

def get_recent_rewards(db: Session, user_id: int, limit: int = 10) -> List[RewardEvent]:
    """Most recent reward events; ties on timestamp go to the later insert"""
    with store_errors(db, "load recent rewards"):
        return db.query(RewardEvent).filter(
            RewardEvent.user_id == user_id
        ).order_by(RewardEvent.timestamp.desc(), RewardEvent.id.desc()).limit(limit).all()

def reconcile_user_points(db: Session, user_id: int) -> int:
    """
    Verify the cached total against the ledger.

    Raises PartialUpdateInconsistency on mismatch; returns the total otherwise.
    """
    totals = get_reward_totals(db, user_id)
    if not totals.consistent:
        raise PartialUpdateInconsistency(
            f"User {user_id} points out of sync: cached {totals.current_points}, "
            f"ledger {totals.total_points_earned}",
            user_id=user_id
        )
    return totals.current_points

def reconcile_all(db: Session) -> List[int]:
    """Check every user; returns ids whose cached total disagrees with the ledger"""
    with store_errors(db, "list users"):
        user_ids = db.execute(select(User.id).order_by(User.id)).scalars().all()

    inconsistent = []
    for user_id in user_ids:
        if not get_reward_totals(db, user_id).consistent:
            inconsistent.append(user_id)
    logger.info(f"Reconciled {len(user_ids)} users, {len(inconsistent)} inconsistent")
    return inconsistent
