"""Directory requests: ``getServerList``, ``refreshServers`` and ``forceRefresh``."""

from disclink.commands import register_command
from disclink.hub import frames


@register_command("getServerList")
async def get_server_list(controller, connection, payload):
    if payload.get("force"):
        controller.refresh_directory()
        return
    await controller.hub.send(connection, frames.server_list(controller.state.directory.servers))


@register_command("refreshServers", "forceRefresh")
async def refresh_servers(controller, connection, payload):
    controller.refresh_directory()
