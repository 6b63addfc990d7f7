"""Grant Portal CLI tool (grantctl)."""

from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(name="grantctl", help="Grant Portal CLI")
db_app = typer.Typer(help="Database management commands")
invite_app = typer.Typer(help="Invite code commands")
app.add_typer(db_app, name="db")
app.add_typer(invite_app, name="invite-code")


def _client(api_url: Optional[str], token: Optional[str]):
    import httpx
    from grant_portal.core.config import settings

    token = token or settings.PORTAL_API_TOKEN
    if not token:
        typer.secho("❌ No API token. Pass --token or set PORTAL_API_TOKEN.", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    return httpx.Client(
        base_url=api_url or settings.PORTAL_API_URL,
        headers={"Authorization": f"Bearer {token}"},
        timeout=30,
    )


@db_app.command("init")
def db_init():
    """Create every table that does not exist yet."""
    from grant_portal.db.session import init_db

    init_db()
    typer.echo("✅ Database tables created")


@db_app.command("seed")
def db_seed():
    """Seed roles, the first admin, and sample data."""
    from grant_portal.db.session import SessionLocal, init_db
    from grant_portal.db.seeds.seed_roles import seed_roles
    from grant_portal.db.seeds.seed_super_admin import seed_super_admin
    from grant_portal.db.seeds.seed_sample_data import seed_sample_data

    init_db()
    db = SessionLocal()
    try:
        seed_roles(db)
        seed_super_admin(db)
        seed_sample_data(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@invite_app.command("create")
def invite_create(
    thematic_project_id: str = typer.Argument(..., help="Thematic project ID"),
    max_uses: Optional[int] = typer.Option(None, help="Maximum redemptions (unlimited if omitted)"),
    expires_at: Optional[str] = typer.Option(None, help="Expiry date, YYYY-MM-DD"),
    api_url: Optional[str] = typer.Option(None, help="Portal API base URL"),
    token: Optional[str] = typer.Option(None, help="Bearer token of a manager or admin"),
):
    """Create an invite code through the API."""
    with _client(api_url, token) as client:
        resp = client.post("/invite-codes/", json={
            "thematic_project_id": thematic_project_id,
            "max_uses": max_uses,
            "expires_at": expires_at,
        })
    data = resp.json()
    if resp.status_code >= 400:
        typer.secho(f"❌ {data.get('message') or data}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"✅ {data['code']} (max uses: {data.get('max_uses') or 'unlimited'})")


def _print_errors(session) -> None:
    for notice in session.notices:
        if notice.level == "error":
            typer.secho(f"❌ {notice.title}: {notice.description}", fg=typer.colors.RED)


@app.command("bulk-remove")
def bulk_remove(
    user_ids: List[str] = typer.Argument(None, help="IDs of the users to remove"),
    ids_file: Optional[Path] = typer.Option(None, "--file", help="File with one user ID per line"),
    exclude: List[str] = typer.Option([], "--exclude", help="Leave this user ID out of the selection"),
    deactivate_ineligible: Optional[bool] = typer.Option(
        None,
        "--deactivate-ineligible/--keep-ineligible",
        help="Deactivate users that cannot be deleted (asked interactively if omitted)",
    ),
    api_url: Optional[str] = typer.Option(None, help="Portal API base URL"),
    token: Optional[str] = typer.Option(None, help="Bearer token of a manager or admin"),
):
    """Delete users without history and optionally deactivate the rest."""
    from grant_portal.services.bulk_removal import (
        BulkRemovalSession, HttpAuditSink, HttpEligibilityChecker, HttpUserAdminGateway,
    )
    from grant_portal.services.bulk_removal.presentation import eligibility_lines, result_lines
    from grant_portal.services.bulk_removal.selection import (
        clear_selection, ordered, select_all, update_selection,
    )

    rows = list(user_ids or [])
    if ids_file:
        rows += [line.strip() for line in ids_file.read_text().splitlines() if line.strip()]
    selection = select_all(clear_selection(), rows)
    for user_id in exclude:
        selection = update_selection(selection, user_id, False)
    ids = ordered(selection, rows)
    if not ids:
        typer.secho("❌ No users selected", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    with _client(api_url, token) as client:
        session = BulkRemovalSession(
            None,
            checker=HttpEligibilityChecker(client),
            gateway=HttpUserAdminGateway(client),
            audit_sink=HttpAuditSink(client),
        )
        report = session.open(ids)
        if report is None:
            _print_errors(session)
            raise typer.Exit(code=1)

        for line in eligibility_lines(report):
            typer.echo(line)

        if report.ineligible_for_deletion:
            if deactivate_ineligible is None:
                deactivate_ineligible = typer.confirm(
                    "Deactivate the users that cannot be deleted?", default=False,
                )
            session.set_deactivate_ineligible(deactivate_ineligible)

        if not session.has_action:
            typer.echo("No user can be deleted and deactivation was not chosen; nothing will change.")

        word = session.gate.word
        session.set_confirmation_text(typer.prompt(f"Type {word} to confirm"))
        if not session.word_confirmed:
            typer.secho(f"❌ Confirmation did not match {word}; nothing was changed", fg=typer.colors.RED)
            raise typer.Exit(code=1)

        result = session.confirm()
        _print_errors(session)
        if result is not None:
            for line in result_lines(result):
                typer.echo(line)
        session.close()

    if result is None or result.failed:
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("grant_portal.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
