from flask import Blueprint, jsonify, request
from flask_login import current_user

from activityhub.routes.helpers import role_required, get_json_body, get_scope_filters
from activityhub.services.activity_service import ActivityLifecycle
from activityhub.services.statistics_service import StatisticsAggregator

student_bp = Blueprint('student', __name__, url_prefix='/api/activities')


@student_bp.route('', methods=['POST'])
@role_required('student')
def create_activity():
    activity = ActivityLifecycle.create(current_user.id, get_json_body())
    return jsonify({
        "success": True,
        "message": "Activity created successfully",
        "activity": activity.to_dict(),
    }), 201


@student_bp.route('', methods=['GET'])
@role_required('student')
def my_activities():
    filters = {
        "status": request.args.get('status'),
        "type": request.args.get('type'),
        "category": request.args.get('category'),
        "semester": request.args.get('semester'),
    }
    activities = ActivityLifecycle.list_for_student(current_user.id, filters)
    stats = StatisticsAggregator.summary({"student_id": current_user.id})
    return jsonify({
        "success": True,
        "count": len(activities),
        "stats": stats,
        "activities": [a.to_dict() for a in activities],
    })


@student_bp.route('/stats', methods=['GET'])
@role_required('student')
def my_stats():
    scope = dict(get_scope_filters(), student_id=current_user.id)
    stats = StatisticsAggregator.summary(scope)
    stats["monthly_activities"] = StatisticsAggregator.monthly_trend(scope)
    stats["activity_score"] = current_user.activity_score
    stats["total_credits"] = current_user.total_credits
    return jsonify({"success": True, "stats": stats})


@student_bp.route('/<int:act_id>', methods=['GET'])
@role_required('student', 'faculty', 'admin')
def get_activity(act_id):
    activity = ActivityLifecycle.get(act_id, current_user.id)
    return jsonify({"success": True, "activity": activity.to_dict()})


@student_bp.route('/<int:act_id>', methods=['PUT'])
@role_required('student')
def update_activity(act_id):
    activity = ActivityLifecycle.update(act_id, current_user.id, get_json_body())
    return jsonify({
        "success": True,
        "message": "Activity updated successfully",
        "activity": activity.to_dict(),
    })


@student_bp.route('/<int:act_id>', methods=['DELETE'])
@role_required('student')
def delete_activity(act_id):
    ActivityLifecycle.delete(act_id, current_user.id)
    return jsonify({"success": True, "message": "Activity deleted successfully"})


@student_bp.route('/<int:act_id>/documents', methods=['POST'])
@role_required('student')
def upload_documents(act_id):
    body = get_json_body()
    documents = ActivityLifecycle.attach_documents(act_id, current_user.id, body.get('documents'))
    return jsonify({
        "success": True,
        "message": "Documents uploaded successfully",
        "documents": [d.to_dict() for d in documents],
    })
