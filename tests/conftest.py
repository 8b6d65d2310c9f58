from datetime import date
from itertools import count

import pytest
from flask import g, request_started

from activityhub import create_app
from activityhub.delivery import DeliveryChannel
from activityhub.models import db, User, Role
from config import TestConfig


class RecordingChannel(DeliveryChannel):
    def __init__(self):
        self.sent = []

    def send(self, recipient_id, payload):
        self.sent.append((recipient_id, payload))


class FailingChannel(DeliveryChannel):
    def send(self, recipient_id, payload):
        raise ConnectionError("socket layer down")


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def app(channel):
    app = create_app(TestConfig, channel=channel)

    # The app context below is shared by every test-client request, so drop
    # Flask-Login's per-request user cache before each request.
    def _reset_login_user(sender, **extra):
        g.pop('_login_user', None)

    request_started.connect(_reset_login_user, app)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    seq = count(1)

    def _make_user(role=Role.STUDENT, department='CSE', **kwargs):
        n = next(seq)
        user = User(
            email=kwargs.pop('email', f'{role.value}{n}@college.edu'),
            role=role,
            full_name=kwargs.pop('full_name', f'{role.value.title()} {n}'),
            department=department,
            institution_id=kwargs.pop('institution_id', f'{role.value.upper()}{n:03d}'),
            **kwargs
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def student(make_user):
    return make_user(Role.STUDENT, department='CSE')


@pytest.fixture
def faculty(make_user):
    return make_user(Role.FACULTY, department='CSE')


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, department='IT')


@pytest.fixture
def activity_data():
    def _activity_data(**overrides):
        data = {
            "type": "workshop",
            "category": "co-curricular",
            "level": "college",
            "achievement_type": "participation",
            "title": "Robotics Workshop",
            "description": "Two day hands-on robotics workshop",
            "start_date": date(2024, 3, 1).isoformat(),
        }
        data.update(overrides)
        return data

    return _activity_data


@pytest.fixture
def login(app):
    """Returns a test client with the given user in the Flask-Login session."""
    def _login(user):
        client = app.test_client()
        with client.session_transaction() as sess:
            sess['_user_id'] = str(user.id)
            sess['_fresh'] = True
        return client

    return _login


@pytest.fixture
def failing_channel(app):
    app.extensions['delivery_channel'] = FailingChannel()
    return app.extensions['delivery_channel']
