import pytest

from activityhub.errors import InvalidArgument, InvalidState, NotFound, PermissionDenied
from activityhub.models import db, Activity, ActivityStatus, Notification, NotificationType, Role
from activityhub.services.activity_service import ActivityLifecycle
from activityhub.services.review_service import ReviewWorkflow


class TestCreate:
    def test_create_sets_pending_and_score(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data(
            type="internship", level="college", achievement_type="winner",
            start_date="2024-06-01", end_date="2024-06-22",
        ))

        assert activity.status == ActivityStatus.PENDING
        assert activity.student_id == student.id
        assert activity.duration == 21
        assert activity.score == 41
        assert activity.is_verified is False
        assert activity.credits == 0

    def test_defaults_level_and_achievement(self, student, activity_data):
        data = activity_data()
        del data["level"]
        del data["achievement_type"]
        activity = ActivityLifecycle.create(student.id, data)

        # workshop 5 x college 1.2 + participation 3
        assert activity.score == 9

    def test_unknown_type_is_invalid_argument(self, student, activity_data):
        with pytest.raises(InvalidArgument) as exc:
            ActivityLifecycle.create(student.id, activity_data(type="hackathon"))
        assert exc.value.details["field"] == "type"
        assert Activity.query.count() == 0

    def test_missing_required_field(self, student, activity_data):
        data = activity_data()
        del data["start_date"]
        with pytest.raises(InvalidArgument):
            ActivityLifecycle.create(student.id, data)

    def test_only_students_create(self, faculty, activity_data):
        with pytest.raises(PermissionDenied):
            ActivityLifecycle.create(faculty.id, activity_data())

    def test_mentor_notified_on_submission(self, make_user, activity_data, channel):
        mentor = make_user(Role.FACULTY)
        mentee = make_user(Role.STUDENT, mentor_id=mentor.id)

        activity = ActivityLifecycle.create(mentee.id, activity_data())

        notification = Notification.query.filter_by(recipient_id=mentor.id).one()
        assert notification.type == NotificationType.ACTIVITY_SUBMITTED
        assert notification.related_activity_id == activity.id
        assert channel.sent[0][0] == mentor.id


class TestUpdateDelete:
    def test_update_recomputes_score(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        updated = ActivityLifecycle.update(activity.id, student.id, {"level": "international", "achievement_type": "winner"})

        # workshop 5 x 2.5 + 20
        assert updated.score == 33

    def test_update_ignores_protected_fields(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        ActivityLifecycle.update(activity.id, student.id, {"score": 999, "status": "approved", "credits": 10})

        db.session.refresh(activity)
        assert activity.status == ActivityStatus.PENDING
        assert activity.score == 9
        assert activity.credits == 0

    def test_invalid_update_leaves_row_untouched(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        with pytest.raises(InvalidArgument):
            ActivityLifecycle.update(activity.id, student.id, {"title": "New", "level": "galactic"})

        db.session.refresh(activity)
        assert activity.title == "Robotics Workshop"

    def test_other_student_cannot_update(self, student, make_user, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        other = make_user(Role.STUDENT)
        with pytest.raises(PermissionDenied):
            ActivityLifecycle.update(activity.id, other.id, {"title": "Hijacked"})

    def test_approved_activity_is_immutable(self, student, faculty, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        ReviewWorkflow.review(activity.id, faculty.id, "approved")

        with pytest.raises(InvalidState):
            ActivityLifecycle.update(activity.id, student.id, {"title": "Changed"})
        with pytest.raises(InvalidState):
            ActivityLifecycle.delete(activity.id, student.id)
        assert db.session.get(Activity, activity.id) is not None

    def test_non_pending_statuses_are_locked(self, student, faculty, activity_data):
        """under-review and rejected activities are no longer student-editable."""
        under_review = ActivityLifecycle.create(student.id, activity_data())
        ReviewWorkflow.start_review(under_review.id, faculty.id)
        rejected = ActivityLifecycle.create(student.id, activity_data(title="Second"))
        ReviewWorkflow.review(rejected.id, faculty.id, "rejected", remarks="No certificate")

        for activity in (under_review, rejected):
            with pytest.raises(InvalidState):
                ActivityLifecycle.update(activity.id, student.id, {"title": "Resubmitted"})

    def test_delete_pending(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        ActivityLifecycle.delete(activity.id, student.id)
        assert db.session.get(Activity, activity.id) is None

    def test_delete_missing(self, student):
        with pytest.raises(NotFound):
            ActivityLifecycle.delete(12345, student.id)


class TestDocumentsAndReads:
    def test_attach_documents(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        docs = ActivityLifecycle.attach_documents(activity.id, student.id, [
            {"name": "certificate.pdf", "url": "/uploads/abc_certificate.pdf", "mime_type": "application/pdf"},
        ])

        assert len(docs) == 1
        assert docs[0].mime_type == "application/pdf"

    def test_attach_requires_url(self, student, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        with pytest.raises(InvalidArgument):
            ActivityLifecycle.attach_documents(activity.id, student.id, [{"name": "x.pdf"}])

    def test_get_respects_department(self, student, make_user, activity_data):
        activity = ActivityLifecycle.create(student.id, activity_data())
        same_dept = make_user(Role.FACULTY, department='CSE')
        other_dept = make_user(Role.FACULTY, department='ECE')

        assert ActivityLifecycle.get(activity.id, same_dept.id).id == activity.id
        with pytest.raises(PermissionDenied):
            ActivityLifecycle.get(activity.id, other_dept.id)

    def test_list_filters_by_status(self, student, faculty, activity_data):
        first = ActivityLifecycle.create(student.id, activity_data(title="First"))
        ActivityLifecycle.create(student.id, activity_data(title="Second"))
        ReviewWorkflow.review(first.id, faculty.id, "approved")

        pending = ActivityLifecycle.list_for_student(student.id, {"status": "pending"})
        assert [a.title for a in pending] == ["Second"]
