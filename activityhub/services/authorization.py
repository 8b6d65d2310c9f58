from sqlalchemy import false

from activityhub.errors import PermissionDenied
from activityhub.models import User, Role


class ReviewerPolicy:
    """
    Organizational-unit authority for reviewers.
    - admin: any student
    - faculty: students of the same department
    - everyone else: nobody
    """

    @staticmethod
    def can_review(reviewer, student):
        if reviewer is None or student is None or not reviewer.is_active:
            return False
        if reviewer.role == Role.ADMIN:
            return True
        if reviewer.role == Role.FACULTY:
            return bool(reviewer.department) and reviewer.department == student.department
        return False

    @staticmethod
    def assert_can_review(reviewer, student):
        if not ReviewerPolicy.can_review(reviewer, student):
            raise PermissionDenied("Reviewer has no authority over this student's department")

    @staticmethod
    def apply_scope(query, reviewer):
        """
        Restricts a query that is already joined to the student ``User`` to the
        reviewer's unit.
        """
        if reviewer.role == Role.ADMIN:
            return query
        if reviewer.role == Role.FACULTY and reviewer.department:
            return query.filter(User.department == reviewer.department)
        return query.filter(false())  # No access
