import logging

from flask import current_app

logger = logging.getLogger(__name__)


class DeliveryChannel:
    """
    Live delivery transport (push/socket layer). Implementations must treat a
    recipient without a connected client as a no-op.
    """

    def send(self, recipient_id, payload):
        raise NotImplementedError


class LoggingChannel(DeliveryChannel):
    """Default channel when no transport is wired in: logs what would be pushed."""

    def send(self, recipient_id, payload):
        logger.info("new-notification -> room %s: %s", recipient_id, payload.get("title"))


def init_channel(app, channel=None):
    app.extensions['delivery_channel'] = channel or LoggingChannel()


def get_channel():
    return current_app.extensions['delivery_channel']
