from datetime import date, datetime

from activityhub.errors import InvalidArgument


def parse_enum(enum_cls, value, field):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidArgument(f"Invalid {field} '{value}'. Allowed: {allowed}", field=field)


def parse_date(value, field):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise InvalidArgument(f"Invalid {field} '{value}', expected YYYY-MM-DD", field=field)
