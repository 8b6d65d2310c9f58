import logging

from activityhub.errors import NotFound, PermissionDenied, InvalidState, InvalidArgument
from activityhub.models import (
    db, User, Activity, ActivityDocument, ActivityType, ActivityCategory, ActivityLevel,
    AchievementType, ActivityStatus, NotificationType, Role,
)
from activityhub.services.authorization import ReviewerPolicy
from activityhub.services.notification_service import NotificationDispatcher
from activityhub.services.score_calculator import ScoreCalculator
from activityhub.services.unit_of_work import UnitOfWork
from activityhub.validators import parse_enum, parse_date

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('type', 'title', 'description', 'category', 'start_date')

ENUM_FIELDS = {
    'type': ActivityType,
    'category': ActivityCategory,
    'level': ActivityLevel,
    'achievement_type': AchievementType,
}

TEXT_FIELDS = (
    'title', 'description', 'organizer', 'location', 'rank', 'certificate_number',
    'github_link', 'project_link', 'semester', 'academic_year',
)

# Only these may be changed by the owning student
EDITABLE_FIELDS = set(ENUM_FIELDS) | set(TEXT_FIELDS) | {'skills', 'start_date', 'end_date'}


class ActivityLifecycle:
    @staticmethod
    def _get_user(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFound("User", user_id)
        return user

    @staticmethod
    def _get_activity(activity_id):
        activity = db.session.get(Activity, activity_id)
        if not activity:
            raise NotFound("Activity", activity_id)
        return activity

    @staticmethod
    def _get_owned_open_activity(activity_id, actor_id, action):
        activity = ActivityLifecycle._get_activity(activity_id)
        if activity.student_id != actor_id:
            raise PermissionDenied(f"Not authorized to {action} this activity")
        # Only pending submissions are editable; once a reviewer has touched
        # an activity it belongs to the review workflow.
        if activity.status != ActivityStatus.PENDING:
            raise InvalidState(f"Cannot {action} an activity with status '{activity.status.value}'")
        return activity

    @staticmethod
    def _apply_fields(activity, data):
        for field, enum_cls in ENUM_FIELDS.items():
            if field in data and data[field] is not None:
                setattr(activity, field, parse_enum(enum_cls, data[field], field))

        for field in TEXT_FIELDS:
            if field in data:
                value = data[field]
                setattr(activity, field, value.strip() if isinstance(value, str) else value)

        if 'skills' in data:
            skills = data['skills'] or []
            if not isinstance(skills, (list, tuple)):
                raise InvalidArgument("Skills must be a list", field='skills')
            activity.skills = [str(s).strip() for s in skills if str(s).strip()]

        if 'start_date' in data:
            activity.start_date = parse_date(data['start_date'], 'start_date')
        if 'end_date' in data:
            activity.end_date = parse_date(data['end_date'], 'end_date')

        if not activity.title or not activity.description:
            raise InvalidArgument("Activity title and description are required")
        if not activity.start_date:
            raise InvalidArgument("Start date is required", field='start_date')

    @staticmethod
    def _rescore(activity):
        activity.duration = ScoreCalculator.compute_duration(activity.start_date, activity.end_date)
        activity.score = ScoreCalculator.score_activity(activity)

    @staticmethod
    def create(student_id, data):
        student = ActivityLifecycle._get_user(student_id)
        if student.role != Role.STUDENT or not student.is_active:
            raise PermissionDenied("Only active students can submit activities")

        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise InvalidArgument(f"Missing required fields: {', '.join(missing)}", field=missing[0])

        activity = Activity(
            student_id=student.id,
            status=ActivityStatus.PENDING,
            level=ActivityLevel.COLLEGE,
            achievement_type=AchievementType.PARTICIPATION,
            skills=[],
        )
        ActivityLifecycle._apply_fields(activity, data)
        ActivityLifecycle._rescore(activity)

        submitted = []
        with UnitOfWork() as uow:
            db.session.add(activity)
            db.session.flush()

            if student.mentor_id:
                submitted.append(NotificationDispatcher.record(
                    recipient_id=student.mentor_id,
                    sender_id=student.id,
                    type=NotificationType.ACTIVITY_SUBMITTED,
                    title="New Activity Submitted",
                    message=f"{student.full_name} has submitted a new {activity.type.value} activity: {activity.title}",
                    related_activity_id=activity.id,
                    link=f"/faculty/activities/{activity.id}",
                ))
            uow.after_commit(lambda: NotificationDispatcher.deliver(submitted))

        logger.info("Activity %s created by student %s (score=%s)", activity.id, student.id, activity.score)
        return activity

    @staticmethod
    def update(activity_id, actor_id, data):
        activity = ActivityLifecycle._get_owned_open_activity(activity_id, actor_id, "update")

        editable = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        with UnitOfWork():
            ActivityLifecycle._apply_fields(activity, editable)
            ActivityLifecycle._rescore(activity)

        logger.info("Activity %s updated by student %s (score=%s)", activity.id, actor_id, activity.score)
        return activity

    @staticmethod
    def delete(activity_id, actor_id):
        activity = ActivityLifecycle._get_owned_open_activity(activity_id, actor_id, "delete")
        db.session.delete(activity)
        db.session.commit()
        logger.info("Activity %s deleted by student %s", activity_id, actor_id)

    @staticmethod
    def attach_documents(activity_id, actor_id, documents):
        """
        Stores metadata (name, url, mime type) for files the document store
        already holds.
        """
        activity = ActivityLifecycle._get_owned_open_activity(activity_id, actor_id, "attach documents to")
        if not documents:
            raise InvalidArgument("No documents supplied", field='documents')

        with UnitOfWork():
            for doc in documents:
                if not doc.get('name') or not doc.get('url'):
                    raise InvalidArgument("Each document needs a name and url", field='documents')
                activity.documents.append(ActivityDocument(
                    name=doc['name'],
                    url=doc['url'],
                    mime_type=doc.get('mime_type') or doc.get('type'),
                ))

        return activity.documents

    @staticmethod
    def get(activity_id, actor_id):
        activity = ActivityLifecycle._get_activity(activity_id)
        actor = ActivityLifecycle._get_user(actor_id)

        if activity.student_id == actor.id:
            return activity
        if actor.role == Role.STUDENT or not ReviewerPolicy.can_review(actor, activity.student):
            raise PermissionDenied("Not authorized to access this activity")
        return activity

    @staticmethod
    def list_for_student(student_id, filters=None):
        filters = filters or {}
        query = Activity.query.filter_by(student_id=student_id)

        if filters.get('status'):
            query = query.filter(Activity.status == parse_enum(ActivityStatus, filters['status'], 'status'))
        if filters.get('type'):
            query = query.filter(Activity.type == parse_enum(ActivityType, filters['type'], 'type'))
        if filters.get('category'):
            query = query.filter(Activity.category == parse_enum(ActivityCategory, filters['category'], 'category'))
        if filters.get('semester'):
            query = query.filter(Activity.semester == filters['semester'])

        return query.order_by(Activity.created_at.desc(), Activity.id.desc()).all()
