"""
Student Activity Review Engine
------------------------------
- activityhub/models.py: DB Models (activities, student aggregate, badges, notifications)
- activityhub/services/: scoring, badge, lifecycle, review, notification and statistics logic
- activityhub/routes/: JSON blueprints over the services

Run with `flask --app app run`; create tables with `flask --app app init-db`.
"""
from activityhub import create_app

app = create_app()

if __name__ == '__main__':
    app.run(debug=True)
