"""
HotReload Command API Routes.

User-invocable commands and the extension registry.
Requires Python 3.11+.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import require_reloader
from reloader.engine import HotReloader
from utils.logger import get_logger

router = APIRouter()
logger = get_logger("api.commands")


class CommandInfo(BaseModel):
    """A command the user can run."""

    id: str
    name: str


class CommandResult(BaseModel):
    """Outcome of running a command."""

    id: str
    triggered: bool


class ExtensionResponse(BaseModel):
    """One extension from the latest registry scan."""

    id: str
    directory_name: str
    auto_reload: bool


@router.get("/commands", response_model=list[CommandInfo])
async def list_commands(
    reloader: HotReloader = Depends(require_reloader),
) -> list[CommandInfo]:
    """List user-invocable commands."""
    return [
        CommandInfo(id=command_id, name=name)
        for command_id, (name, _callback) in reloader.commands.items()
    ]


@router.post("/commands/{command_id}", response_model=CommandResult)
async def run_command(
    command_id: str,
    reloader: HotReloader = Depends(require_reloader),
) -> CommandResult:
    """
    Run a command.

    ``triggered`` is False when the command was coalesced with one that
    ran moments ago.
    """
    command = reloader.commands.get(command_id)
    if command is None:
        raise HTTPException(status_code=404, detail=f"Unknown command: {command_id}")

    _name, callback = command
    triggered = bool(callback())
    logger.info("command_run", command_id=command_id, triggered=triggered)
    return CommandResult(id=command_id, triggered=triggered)


@router.get("/extensions", response_model=list[ExtensionResponse])
async def list_extensions(
    reloader: HotReloader = Depends(require_reloader),
) -> list[ExtensionResponse]:
    """List extensions found by the latest scan."""
    return [
        ExtensionResponse(
            id=record.id,
            directory_name=record.directory_name,
            auto_reload=record.is_auto_reload_enabled,
        )
        for record in sorted(reloader.extensions, key=lambda r: r.id)
    ]
