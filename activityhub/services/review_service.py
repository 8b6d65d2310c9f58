import logging
from datetime import datetime

from sqlalchemy import update, select
from sqlalchemy.exc import IntegrityError

from activityhub.errors import NotFound, InvalidState, InvalidArgument
from activityhub.models import (
    db, User, Activity, Badge, ActivityStatus, ActivityType, OPEN_STATUSES,
    NotificationType, NotificationPriority,
)
from activityhub.validators import parse_enum
from activityhub.services.authorization import ReviewerPolicy
from activityhub.services.badge_evaluator import BadgeEvaluator
from activityhub.services.notification_service import NotificationDispatcher
from activityhub.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

REVIEW_OUTCOMES = (ActivityStatus.APPROVED, ActivityStatus.REJECTED)
MAX_PAGE_SIZE = 100


class ReviewWorkflow:

    @staticmethod
    def _load(activity_id, reviewer_id):
        activity = db.session.get(Activity, activity_id)
        if not activity:
            raise NotFound("Activity", activity_id)
        reviewer = db.session.get(User, reviewer_id)
        if not reviewer:
            raise NotFound("User", reviewer_id)
        return activity, reviewer

    @staticmethod
    def _parse_outcome(target_status):
        try:
            status = ActivityStatus(target_status)
        except ValueError:
            status = None
        if status not in REVIEW_OUTCOMES:
            raise InvalidArgument("Status must be either approved or rejected", field='status')
        return status

    @staticmethod
    def _parse_credits(credits):
        if credits is None or credits == '':
            return None
        if isinstance(credits, bool):
            raise InvalidArgument("Credits must be a non-negative integer", field='credits')
        try:
            value = int(credits)
        except (TypeError, ValueError):
            raise InvalidArgument("Credits must be a non-negative integer", field='credits')
        if value < 0 or value != float(credits):
            raise InvalidArgument("Credits must be a non-negative integer", field='credits')
        return value

    @staticmethod
    def _transition(activity, allowed_from, values):
        """
        Compare-and-set on status: only succeeds while the row is still in one
        of ``allowed_from``. A concurrent reviewer that got there first makes
        this a no-op, reported as InvalidState.
        """
        result = db.session.execute(
            update(Activity)
            .where(Activity.id == activity.id, Activity.status.in_(allowed_from))
            .values(updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(f"Activity {activity.id} has already been reviewed")
        db.session.refresh(activity)

    @staticmethod
    def _credit_student(activity):
        """
        Adds score/credits with an in-database increment, then awards at most
        one badge based on the post-increment total.
        """
        db.session.execute(
            update(User)
            .where(User.id == activity.student_id)
            .values(
                activity_score=User.activity_score + activity.score,
                total_credits=User.total_credits + activity.credits,
            )
            .execution_options(synchronize_session=False)
        )
        student = db.session.get(User, activity.student_id)
        db.session.refresh(student)

        # Re-read held tiers from the table, not the cached collection
        held = db.session.scalars(select(Badge.tier).where(Badge.student_id == student.id)).all()
        awarded = None
        for tier in BadgeEvaluator.evaluate(student.activity_score, held):
            try:
                with db.session.begin_nested():
                    db.session.add(Badge(student_id=student.id, tier=tier, name=BadgeEvaluator.badge_name(tier)))
            except IntegrityError:
                # Concurrent approval already awarded this tier
                logger.info("Badge %s already held by student %s", tier.value, student.id)
                continue
            awarded = tier
            logger.info("Student %s earned %s badge at score %s", student.id, tier.value, student.activity_score)

        db.session.refresh(student)
        return student, awarded

    @staticmethod
    def review(activity_id, reviewer_id, target_status, remarks=None, credits=None):
        """
        Approve or reject an activity.

        Steps run as one unit of work:
        1. status/remarks/reviewer/timestamp/is_verified (+ credits on approval)
        2. on approval, atomic increment of the student's score and credits
           and a badge check
        3. outcome notification, plus a badge-earned notification when a
           badge was awarded

        Delivery to the live channel happens after commit and is best-effort.
        """
        activity, reviewer = ReviewWorkflow._load(activity_id, reviewer_id)
        status = ReviewWorkflow._parse_outcome(target_status)
        credit_value = ReviewWorkflow._parse_credits(credits)
        ReviewerPolicy.assert_can_review(reviewer, activity.student)

        if activity.status.is_terminal:
            raise InvalidState(f"Activity {activity.id} has already been {activity.status.value}")

        approved = status == ActivityStatus.APPROVED
        values = {
            'status': status,
            'remarks': remarks,
            'reviewed_by_id': reviewer.id,
            'reviewed_at': datetime.utcnow(),
            'is_verified': approved,
        }
        if approved and credit_value is not None:
            values['credits'] = credit_value

        notifications = []
        awarded = None
        with UnitOfWork() as uow:
            ReviewWorkflow._transition(activity, OPEN_STATUSES, values)

            if approved:
                _, awarded = ReviewWorkflow._credit_student(activity)

            notifications.append(NotificationDispatcher.record(
                recipient_id=activity.student_id,
                sender_id=reviewer.id,
                type=NotificationType.ACTIVITY_APPROVED if approved else NotificationType.ACTIVITY_REJECTED,
                title=f"Activity {'Approved' if approved else 'Rejected'}",
                message=f'Your activity "{activity.title}" has been {status.value}. {remarks or ""}'.strip(),
                related_activity_id=activity.id,
                priority=NotificationPriority.NORMAL if approved else NotificationPriority.HIGH,
                link=f"/activities/{activity.id}",
            ))

            if awarded:
                notifications.append(NotificationDispatcher.record(
                    recipient_id=activity.student_id,
                    sender_id=reviewer.id,
                    type=NotificationType.BADGE_EARNED,
                    title=f"{awarded.value.capitalize()} Badge Earned!",
                    message=f"Congratulations! You have earned the {BadgeEvaluator.badge_name(awarded)}!",
                    related_activity_id=activity.id,
                    priority=NotificationPriority.HIGH,
                ))

            uow.after_commit(lambda: NotificationDispatcher.deliver(notifications))

        logger.info("Activity %s %s by reviewer %s", activity.id, status.value, reviewer.id)
        return activity

    @staticmethod
    def start_review(activity_id, reviewer_id):
        """Reviewer claims a pending activity (pending -> under-review)."""
        activity, reviewer = ReviewWorkflow._load(activity_id, reviewer_id)
        ReviewerPolicy.assert_can_review(reviewer, activity.student)

        if activity.status != ActivityStatus.PENDING:
            raise InvalidState(f"Only pending activities can be taken under review (status is '{activity.status.value}')")

        notifications = []
        with UnitOfWork() as uow:
            ReviewWorkflow._transition(activity, (ActivityStatus.PENDING,), {
                'status': ActivityStatus.UNDER_REVIEW,
                'reviewed_by_id': reviewer.id,
            })
            notifications.append(NotificationDispatcher.record(
                recipient_id=activity.student_id,
                sender_id=reviewer.id,
                type=NotificationType.ACTIVITY_UNDER_REVIEW,
                title="Activity Under Review",
                message=f'Your activity "{activity.title}" is being reviewed by {reviewer.full_name}.',
                related_activity_id=activity.id,
                link=f"/activities/{activity.id}",
            ))
            uow.after_commit(lambda: NotificationDispatcher.deliver(notifications))

        logger.info("Activity %s under review by %s", activity.id, reviewer.id)
        return activity

    @staticmethod
    def pending_queue(reviewer_id, filters=None, page=1, per_page=20):
        """Open activities (pending/under-review) inside the reviewer's unit, newest first."""
        reviewer = db.session.get(User, reviewer_id)
        if not reviewer:
            raise NotFound("User", reviewer_id)
        filters = filters or {}
        if page < 1 or per_page < 1:
            raise InvalidArgument("page and limit must be positive", field='page' if page < 1 else 'limit')
        per_page = min(per_page, MAX_PAGE_SIZE)

        query = db.session.query(Activity).join(User, Activity.student_id == User.id)
        query = ReviewerPolicy.apply_scope(query, reviewer)

        status = filters.get('status')
        if status:
            query = query.filter(Activity.status == parse_enum(ActivityStatus, status, 'status'))
        else:
            query = query.filter(Activity.status.in_(OPEN_STATUSES))
        if filters.get('type'):
            query = query.filter(Activity.type == parse_enum(ActivityType, filters['type'], 'type'))
        if filters.get('semester'):
            query = query.filter(Activity.semester == filters['semester'])
        if filters.get('department') and reviewer.is_admin():
            query = query.filter(User.department == filters['department'])

        total = query.count()
        items = (query.order_by(Activity.created_at.desc(), Activity.id.desc())
                 .offset((page - 1) * per_page).limit(per_page).all())
        return {
            "activities": items,
            "total": total,
            "page": page,
            "pages": (total + per_page - 1) // per_page,
        }
