from datetime import datetime

from flask import Blueprint, jsonify, request, send_file
from flask_login import current_user

from activityhub.errors import PermissionDenied, InvalidArgument
from activityhub.models import Role
from activityhub.routes.helpers import role_required, get_scope_filters
from activityhub.services.statistics_service import StatisticsAggregator

analytics_bp = Blueprint('analytics', __name__, url_prefix='/api/analytics')


# --- Helper ---
def resolve_department():
    """Admins may pick any department; faculty are pinned to their own."""
    requested = request.args.get('department')
    if current_user.role == Role.ADMIN:
        return requested
    if requested and requested != current_user.department:
        raise PermissionDenied("Not authorized for this department")
    if not current_user.department:
        raise PermissionDenied("Faculty account is not assigned to a department")
    return current_user.department


def get_scope():
    scope = get_scope_filters()
    department = resolve_department()
    if department:
        scope["department"] = department
    return scope


@analytics_bp.route('/department')
@role_required('faculty', 'admin')
def department_summary():
    scope = get_scope()
    department = scope.pop("department", None)
    if not department:
        raise InvalidArgument("department is required", field='department')
    return jsonify({"success": True, "stats": StatisticsAggregator.department_summary(department, scope)})


@analytics_bp.route('/trend')
@role_required('faculty', 'admin')
def monthly_trend():
    months = request.args.get('months', type=int)
    if months is not None and months < 1:
        raise InvalidArgument("months must be positive", field='months')
    data = StatisticsAggregator.monthly_trend(get_scope(), months=months)
    return jsonify({"success": True, "trend": data})


@analytics_bp.route('/top-students')
@role_required('faculty', 'admin')
def top_students():
    limit = request.args.get('limit', 10, type=int)
    data = StatisticsAggregator.top_students(department=resolve_department(), limit=limit)
    return jsonify({"success": True, "students": data})


# --- Export Endpoints ---

@analytics_bp.route('/export')
@role_required('faculty', 'admin')
def export_statistics():
    excel_file = StatisticsAggregator.export_excel(get_scope())
    filename = f'Activity_Statistics_{datetime.now().strftime("%Y%m%d")}.xlsx'

    return send_file(
        excel_file,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename
    )
