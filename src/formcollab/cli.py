from __future__ import annotations

import logging

import typer

from formcollab.auth import create_user
from formcollab.config import Settings
from formcollab.errors import BackendError
from formcollab.storage import init_storage
from formcollab.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

cli = typer.Typer(add_completion=False)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from formcollab.app import create_app

    settings = Settings()
    configure_logging(settings)
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    uvicorn.run(create_app(settings), host=resolved_host, port=resolved_port)


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    ctx.obj = {"host": host, "port": port}
    if ctx.invoked_subcommand is None:
        run_server(host, port)


@cli.command()
def run(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


@cli.command("create-user")
def create_user_command(
    email: str = typer.Argument(..., help="Login email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    settings = Settings()
    configure_logging(settings)
    storage = init_storage(settings)
    try:
        user = create_user(storage, email, password)
    except (ValueError, BackendError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(user["id"])


@cli.command("create-form")
def create_form_command(
    title: str = typer.Argument(..., help="Form title"),
    created_by: str = typer.Option(..., "--created-by", help="Email of the creating user"),
) -> None:
    settings = Settings()
    configure_logging(settings)
    storage = init_storage(settings)
    title = title.strip()
    if not title:
        typer.echo("Error: title is required", err=True)
        raise typer.Exit(code=1)
    form_id = new_ulid()
    try:
        user = storage.users.get_user_by_email(created_by.strip().lower())
        if not user:
            typer.echo(f"Error: unknown user {created_by}", err=True)
            raise typer.Exit(code=1)
        storage.forms.create_form(
            {
                "id": form_id,
                "title": title,
                "fields": [],
                "created_at": now_utc(),
                "created_by": user["id"],
            }
        )
    except BackendError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    logger.info("Created form %s (%s)", form_id, title)
    typer.echo(form_id)
