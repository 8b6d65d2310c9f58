import logging

from activityhub.models import db

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Transaction boundary for multi-entity mutations.

    Usage:
        with UnitOfWork() as uow:
            ...            # flushes happen inside the open transaction
        # committed here; any exception rolls back and propagates

    Callbacks registered with ``after_commit`` run only once the commit
    succeeded, outside the transaction.
    """

    def __init__(self, session=None):
        self.session = session or db.session
        self._after_commit = []

    def begin(self):
        # Flask-SQLAlchemy sessions autobegin; flush pending state so the
        # unit starts from what is already in the database.
        self.session.flush()
        return self

    def commit(self):
        self.session.commit()
        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            callback()

    def rollback(self):
        self._after_commit = []
        self.session.rollback()

    def after_commit(self, callback):
        self._after_commit.append(callback)

    def __enter__(self):
        return self.begin()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            logger.debug("Rolling back unit of work: %s", exc_type.__name__)
            self.rollback()
            return False
        self.commit()
        return False
