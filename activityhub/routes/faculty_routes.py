from flask import Blueprint, jsonify, request
from flask_login import current_user

from activityhub.errors import PermissionDenied
from activityhub.models import User, Activity, Role
from activityhub.routes.helpers import role_required, get_json_body
from activityhub.services.authorization import ReviewerPolicy
from activityhub.services.review_service import ReviewWorkflow
from activityhub.services.statistics_service import StatisticsAggregator

faculty_bp = Blueprint('faculty', __name__, url_prefix='/api/faculty')


@faculty_bp.route('/activities')
@role_required('faculty', 'admin')
def activities_for_review():
    filters = {
        "status": request.args.get('status'),
        "type": request.args.get('type'),
        "semester": request.args.get('semester'),
        "department": request.args.get('department'),
    }
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('limit', 20, type=int)

    result = ReviewWorkflow.pending_queue(current_user.id, filters, page=page, per_page=per_page)
    return jsonify({
        "success": True,
        "count": len(result["activities"]),
        "total": result["total"],
        "page": result["page"],
        "pages": result["pages"],
        "activities": [a.to_dict() for a in result["activities"]],
    })


@faculty_bp.route('/activities/<int:act_id>/start-review', methods=['POST'])
@role_required('faculty', 'admin')
def start_review(act_id):
    activity = ReviewWorkflow.start_review(act_id, current_user.id)
    return jsonify({"success": True, "activity": activity.to_dict()})


@faculty_bp.route('/activities/<int:act_id>/review', methods=['PUT'])
@role_required('faculty', 'admin')
def review_activity(act_id):
    body = get_json_body()
    activity = ReviewWorkflow.review(
        act_id,
        current_user.id,
        body.get('status'),
        remarks=body.get('remarks'),
        credits=body.get('credits'),
    )
    return jsonify({
        "success": True,
        "message": f"Activity {activity.status.value} successfully",
        "activity": activity.to_dict(),
    })


@faculty_bp.route('/dashboard')
@role_required('faculty', 'admin')
def dashboard():
    # Faculty sees only their department
    department = None if current_user.role == Role.ADMIN else current_user.department
    if current_user.role == Role.FACULTY and not department:
        raise PermissionDenied("Faculty account is not assigned to a department")
    scope = {"department": department} if department else {}

    recent_q = Activity.query.join(User, Activity.student_id == User.id)
    recent_q = ReviewerPolicy.apply_scope(recent_q, current_user)
    recent = recent_q.order_by(Activity.created_at.desc(), Activity.id.desc()).limit(10).all()

    return jsonify({
        "success": True,
        "stats": {
            "summary": StatisticsAggregator.summary(scope),
            "recent_activities": [a.to_dict() for a in recent],
            "top_students": StatisticsAggregator.top_students(department=department, limit=5),
        },
    })
