import io
import logging
from datetime import datetime

import pandas as pd
from flask import current_app
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy import func, case, extract

from activityhub.errors import InvalidArgument
from activityhub.models import db, User, Activity, ActivityStatus, Role
from activityhub.validators import parse_date

logger = logging.getLogger(__name__)

MAX_LEADERBOARD_SIZE = 100


class StatisticsAggregator:
    """
    Read-only dashboard figures. Nothing in here writes to the session.

    A scope is a dict with any of:
        student_id  - a single student
        department  - every student of that department
        start_date / end_date - inclusive range on the activity start date
    """

    @staticmethod
    def _apply_filters(query, scope):
        if not scope:
            return query

        if scope.get('student_id'):
            query = query.filter(Activity.student_id == scope['student_id'])
        if scope.get('department'):
            query = query.filter(User.department == scope['department'])

        start = parse_date(scope.get('start_date'), 'start_date')
        end = parse_date(scope.get('end_date'), 'end_date')
        if start and end and end < start:
            raise InvalidArgument("End date cannot be before start date", field='end_date')
        if start:
            query = query.filter(Activity.start_date >= start)
        if end:
            query = query.filter(Activity.start_date <= end)
        return query

    @staticmethod
    def _get_base_query(scope=None):
        """
        SINGLE SOURCE OF TRUTH
        Every figure starts from activities joined to their student.
        """
        query = db.session.query(Activity).join(User, Activity.student_id == User.id)
        return StatisticsAggregator._apply_filters(query, scope)

    @staticmethod
    def _grouped_counts(base_q, column):
        rows = base_q.with_entities(column, func.count(Activity.id)).group_by(column).all()
        return {key.value: count for key, count in rows}

    @staticmethod
    def summary(scope=None):
        """
        Counts by status/type/category plus score and credit totals
        restricted to approved activities.
        """
        base_q = StatisticsAggregator._get_base_query(scope)

        approved = Activity.status == ActivityStatus.APPROVED
        totals = base_q.with_entities(
            func.count(Activity.id),
            func.sum(case((approved, Activity.score), else_=0)),
            func.sum(case((approved, Activity.credits), else_=0)),
        ).one()

        by_status = {s.value: 0 for s in ActivityStatus}
        by_status.update(StatisticsAggregator._grouped_counts(base_q, Activity.status))

        return {
            "total": int(totals[0] or 0),
            "by_status": by_status,
            "by_type": StatisticsAggregator._grouped_counts(base_q, Activity.type),
            "by_category": StatisticsAggregator._grouped_counts(base_q, Activity.category),
            "approved_score": int(totals[1] or 0),
            "approved_credits": int(totals[2] or 0),
        }

    @staticmethod
    def department_summary(department, scope=None):
        scope = dict(scope or {}, department=department)
        data = StatisticsAggregator.summary(scope)

        data["department"] = department
        data["total_students"] = db.session.query(func.count(User.id)).filter(
            User.role == Role.STUDENT, User.is_active.is_(True), User.department == department
        ).scalar() or 0
        data["participating_students"] = StatisticsAggregator._get_base_query(scope).with_entities(
            func.count(func.distinct(Activity.student_id))
        ).scalar() or 0
        return data

    @staticmethod
    def monthly_trend(scope=None, months=None, now=None):
        """
        Submissions per (year, month) of creation, oldest first, for the
        last ``months`` months.
        """
        months = months or current_app.config.get('STATS_TREND_MONTHS', 6)
        now = now or datetime.utcnow()

        # First day of the oldest month in the window (current month included)
        start_index = now.year * 12 + (now.month - 1) - (months - 1)
        since = datetime(start_index // 12, start_index % 12 + 1, 1)

        year_expr = extract('year', Activity.created_at).label('year')
        month_expr = extract('month', Activity.created_at).label('month')

        query = StatisticsAggregator._get_base_query(scope).filter(Activity.created_at >= since).with_entities(
            year_expr,
            month_expr,
            func.count(Activity.id).label('count'),
        ).group_by(year_expr, month_expr).order_by(year_expr, month_expr)

        return [{"year": int(r.year), "month": int(r.month), "count": r.count} for r in query.all()]

    @staticmethod
    def top_students(department=None, limit=5):
        if limit < 1:
            raise InvalidArgument("limit must be positive", field='limit')
        limit = min(limit, MAX_LEADERBOARD_SIZE)
        query = User.query.filter(User.role == Role.STUDENT, User.is_active.is_(True))
        if department:
            query = query.filter(User.department == department)
        students = query.order_by(User.activity_score.desc(), User.id).limit(limit).all()
        return [{
            "id": s.id,
            "full_name": s.full_name,
            "institution_id": s.institution_id,
            "department": s.department,
            "activity_score": s.activity_score,
            "total_credits": s.total_credits,
            "badges": [b["tier"] for b in s.to_dict()["badges"]],
        } for s in students]

    @staticmethod
    def export_excel(scope=None):
        """
        Summary / By_Type / Monthly_Trend workbook for the given scope.
        """
        output = io.BytesIO()
        writer = pd.ExcelWriter(output, engine='openpyxl')

        summary = StatisticsAggregator.summary(scope)
        summary_row = {
            "Report Date": datetime.now().strftime("%Y-%m-%d"),
            "Scope": str(scope or {}),
            "Total Activities": summary["total"],
            "Approved Score": summary["approved_score"],
            "Approved Credits": summary["approved_credits"],
        }
        for status, count in summary["by_status"].items():
            summary_row[f"Status: {status}"] = count

        df1 = pd.DataFrame([summary_row])
        df1.to_excel(writer, sheet_name='Summary', index=False)
        StatisticsAggregator._format_excel_sheet(writer, df1, 'Summary')

        df2 = pd.DataFrame(
            [{"Type": t, "Activities": c} for t, c in sorted(summary["by_type"].items())],
            columns=["Type", "Activities"],
        )
        df2.to_excel(writer, sheet_name='By_Type', index=False)
        StatisticsAggregator._format_excel_sheet(writer, df2, 'By_Type')

        df3 = pd.DataFrame(StatisticsAggregator.monthly_trend(scope), columns=["year", "month", "count"])
        df3.to_excel(writer, sheet_name='Monthly_Trend', index=False)
        StatisticsAggregator._format_excel_sheet(writer, df3, 'Monthly_Trend')

        writer.close()
        output.seek(0)
        logger.info("Exported statistics workbook for scope %s", scope)
        return output

    @staticmethod
    def _format_excel_sheet(writer, df, sheet_name):
        """
        Helper: Apply formatting (Bold Header, Auto Width)
        """
        worksheet = writer.sheets[sheet_name]
        if df.empty:
            return

        for idx, col in enumerate(df.columns):
            worksheet.cell(row=1, column=idx + 1).font = Font(bold=True)

            max_len = df[col].astype(str).map(len).max()
            final_width = max(max_len, len(str(col))) + 2
            worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(final_width, 50)
