from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from activityhub.services.notification_service import NotificationDispatcher

notification_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notification_bp.route('')
@login_required
def list_notifications():
    unread_only = request.args.get('unread') == 'true'
    notifications = NotificationDispatcher.list_for(current_user.id, unread_only=unread_only)
    return jsonify({
        "success": True,
        "unread_count": NotificationDispatcher.unread_count(current_user.id),
        "notifications": [n.to_dict() for n in notifications],
    })


@notification_bp.route('/<int:notification_id>/read', methods=['PUT'])
@login_required
def mark_read(notification_id):
    notification = NotificationDispatcher.mark_read(notification_id, current_user.id)
    return jsonify({"success": True, "notification": notification.to_dict()})


@notification_bp.route('/read-all', methods=['PUT'])
@login_required
def mark_all_read():
    updated = NotificationDispatcher.mark_all_read(current_user.id)
    return jsonify({"success": True, "updated": updated})
