import logging

from flask import Flask
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect

from config import Config
from activityhub.models import db, User

login_manager = LoginManager()
csrf = CSRFProtect()
migrate = Migrate()


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def create_app(config_class=Config, channel=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    migrate.init_app(app, db)

    from activityhub.delivery import init_channel
    init_channel(app, channel)

    from activityhub.errors import register_error_handlers
    register_error_handlers(app)

    # Register Blueprints
    from activityhub.routes.student_routes import student_bp
    from activityhub.routes.faculty_routes import faculty_bp
    from activityhub.routes.analytics_routes import analytics_bp
    from activityhub.routes.notification_routes import notification_bp

    # JSON API: clients authenticate by session cookie, no form tokens
    for bp in (student_bp, faculty_bp, analytics_bp, notification_bp):
        csrf.exempt(bp)
        app.register_blueprint(bp)

    from activityhub.cli import register_commands
    register_commands(app)

    return app
