import click

from activityhub.models import db, User, Role
from activityhub.services.notification_service import NotificationDispatcher


def seed_users():
    """Default accounts for a fresh database."""
    admin = User(
        email='admin@example.com',
        role=Role.ADMIN,
        full_name='System Administrator',
        department='IT',
        institution_id='ADMIN001'
    )
    hod = User(
        email='hod.cse@college.edu',
        role=Role.FACULTY,
        full_name='Prof. HOD CSE',
        department='CSE',
        institution_id='FAC_HOD_01'
    )
    db.session.add_all([admin, hod])
    db.session.flush()

    student = User(
        email='student.cse@college.edu',
        role=Role.STUDENT,
        full_name='Demo Student',
        department='CSE',
        institution_id='CSE2024001',
        mentor_id=hod.id,
    )
    db.session.add(student)
    db.session.commit()
    return [admin, hod, student]


def register_commands(app):
    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop all tables first.')
    @click.option('--seed/--no-seed', default=True, help='Create default accounts.')
    def init_db(drop, seed):
        """Create tables (and default accounts)."""
        if drop:
            db.drop_all()
        db.create_all()
        click.echo("Database tables created.")

        if seed:
            for user in seed_users():
                click.echo(f"  {user.role.value:<8} {user.email}")

    @app.cli.command('purge-notifications')
    def purge_notifications():
        """Delete notifications older than the retention window."""
        removed = NotificationDispatcher.purge_expired()
        click.echo(f"Removed {removed} expired notifications.")
