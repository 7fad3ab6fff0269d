"""Test helpers for hub-render tools."""

from hub_render.command import Command, run

HUB_RENDER_BIN = "hub-render"


async def run_command(args: list[str], env: dict[str, str] | None = None) -> str:
    return await run(Command([HUB_RENDER_BIN] + args, env=env))
