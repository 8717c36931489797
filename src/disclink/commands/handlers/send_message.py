"""``sendMessage``: hand the request to the outbound queue."""

import logging

from disclink.commands import register_command
from disclink.model import SendRequest

logger = logging.getLogger(__name__)


@register_command("sendMessage")
async def send_message(controller, connection, payload):
    request = SendRequest.from_payload(payload)
    logger.debug("sendMessage ref=%s target=%s", request.ref, request.target.describe())
    controller.spawn(controller.queue.submit(request, origin=connection))
