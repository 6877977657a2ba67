"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votesphere/cli.py`.
Interfaz de línea de comandos: capa de presentación sobre la sesión de
papeleta y el flujo de verificación.

Componentes detectados:
  - main
  - verify_request
  - verify_confirm
  - ballot
  - vote
  - token_clear

======================== ENGLISH ========================
File: `src/votesphere/cli.py`.
Command line interface: presentation layer over the ballot session and
the verification flow.

Exit codes: 0 success, 1 recoverable failure, 2 re-verification required.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import typer

from .api import BallotApi, VerificationApi, build_client
from .config import ClientSettings, load_config
from .errors import ApiError, BallotError
from .logging import setup_logging
from .models import SessionState
from .session import BallotSession
from .token_store import BALLOT_TOKEN_KEY, FileTokenStore
from .verification import VerificationFlow

EXIT_RECOVERABLE = 1
EXIT_REVERIFY = 2
CONFIRM_PROMPT = "Are you sure you want to submit your votes? This action cannot be undone."

app = typer.Typer(help="VoteSphere ballot client")
verify_app = typer.Typer(help="Verify identity and obtain a ballot token.")
token_app = typer.Typer(help="Manage the persisted ballot token.")
app.add_typer(verify_app, name="verify")
app.add_typer(token_app, name="token")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="YAML configuration file."),
) -> None:
    """Interfaz de línea de comandos de VoteSphere.

    English: VoteSphere command line interface.
    """
    try:
        settings = load_config(config)
    except (ValueError, FileNotFoundError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_RECOVERABLE) from exc
    setup_logging(settings.LOG_LEVEL, settings.STORAGE_PATH)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> ClientSettings:
    return ctx.obj


def _store(settings: ClientSettings) -> FileTokenStore:
    return FileTokenStore(settings.token_file_path)


def _fail(error: BaseException) -> typer.Exit:
    """Traduce un error a mensaje y código de salida."""
    message = getattr(error, "message", None) or str(error)
    typer.echo(message, err=True)
    if isinstance(error, BallotError) and error.fatal:
        typer.echo("Run `votesphere verify request <REG_NO>` to obtain a new ballot token.", err=True)
        return typer.Exit(code=EXIT_REVERIFY)
    return typer.Exit(code=EXIT_RECOVERABLE)


def _parse_selection(raw: str) -> Tuple[str, str]:
    position_id, separator, candidate_id = raw.partition("=")
    if not separator or not position_id.strip() or not candidate_id.strip():
        raise typer.BadParameter(f"Expected POSITION_ID=CANDIDATE_ID, got {raw!r}")
    return position_id.strip(), candidate_id.strip()


def _render(session: BallotSession) -> None:
    if session.advisory:
        typer.echo(f"! {session.advisory}")
    for index, position in enumerate(session.positions):
        typer.echo(f"[{index + 1}] {position.name} ({position.id}, seats: {position.seats})")
        candidates = session.candidates_for(position.id)
        if not candidates:
            typer.echo("    No approved candidates for this position")
        selected = session.selections.get(position.id)
        for candidate in candidates:
            marker = "x" if candidate.id == selected else " "
            typer.echo(f"    [{marker}] {candidate.id}: {candidate.name}")
    typer.echo(
        f"Progress: {session.voted_count}/{session.total_positions} "
        f"({round(session.progress_percent)}%)"
    )


@verify_app.command("request")
def verify_request(ctx: typer.Context, reg_no: str = typer.Argument(..., help="Registration number.")) -> None:
    """Solicita un código OTP / Request an OTP."""
    settings = _settings(ctx)

    async def run() -> str:
        async with build_client(settings) as client:
            flow = VerificationFlow(VerificationApi(client), _store(settings))
            return await flow.request_otp(reg_no)

    try:
        message = asyncio.run(run())
    except ApiError as exc:
        raise _fail(exc) from exc
    typer.echo(message)


@verify_app.command("confirm")
def verify_confirm(
    ctx: typer.Context,
    reg_no: str = typer.Argument(..., help="Registration number."),
    otp: str = typer.Argument(..., help="One-time code received."),
) -> None:
    """Canjea el OTP por un token de papeleta / Exchange the OTP for a ballot token."""
    settings = _settings(ctx)

    async def run() -> str:
        async with build_client(settings) as client:
            flow = VerificationFlow(VerificationApi(client), _store(settings))
            return await flow.confirm(reg_no, otp)

    try:
        asyncio.run(run())
    except (ApiError, BallotError) as exc:
        raise _fail(exc) from exc
    typer.echo("Identity verified. Ballot token stored.")


@app.command()
def ballot(
    ctx: typer.Context,
    token: Optional[str] = typer.Option(None, "--token", help="Ballot token (overrides the stored one)."),
) -> None:
    """Muestra la papeleta / Show the ballot."""
    settings = _settings(ctx)

    async def run() -> BallotSession:
        async with build_client(settings) as client:
            session = BallotSession(BallotApi(client), _store(settings), navigation_token=token)
            await session.load()
            return session

    try:
        session = asyncio.run(run())
    except BallotError as exc:
        raise _fail(exc) from exc

    if session.state is SessionState.NO_ELECTIONS:
        typer.echo("No Active Elections: there are no positions currently open for voting.")
        return
    _render(session)


@app.command()
def vote(
    ctx: typer.Context,
    select: List[str] = typer.Option(..., "--select", "-s", help="POSITION_ID=CANDIDATE_ID, once per position."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    token: Optional[str] = typer.Option(None, "--token", help="Ballot token (overrides the stored one)."),
) -> None:
    """Emite el voto / Cast the vote."""
    settings = _settings(ctx)
    selections = [_parse_selection(raw) for raw in select]

    def confirm() -> bool:
        return yes or typer.confirm(CONFIRM_PROMPT, default=False)

    async def run() -> BallotSession:
        async with build_client(settings) as client:
            session = BallotSession(BallotApi(client), _store(settings), navigation_token=token)
            try:
                await session.load()
                if session.state is SessionState.NO_ELECTIONS:
                    return session
                for position_id, candidate_id in selections:
                    if session.select_candidate(position_id, candidate_id) != candidate_id:
                        typer.echo(
                            f"Candidate {candidate_id} is not on the ballot for position {position_id}",
                            err=True,
                        )
                await session.submit(confirm=confirm)
            finally:
                session.close()
            return session

    try:
        session = asyncio.run(run())
    except BallotError as exc:
        raise _fail(exc) from exc

    if session.state is SessionState.NO_ELECTIONS:
        typer.echo("No Active Elections: there are no positions currently open for voting.")
        raise typer.Exit(code=EXIT_RECOVERABLE)
    typer.echo(session.last_result.message if session.last_result else "")
    if session.state is not SessionState.SUBMITTED:
        raise typer.Exit(code=EXIT_RECOVERABLE)


@token_app.command("clear")
def token_clear(ctx: typer.Context) -> None:
    """Elimina el token persistido / Clear the persisted token."""
    _store(_settings(ctx)).clear(BALLOT_TOKEN_KEY)
    typer.echo("Ballot token cleared.")


if __name__ == "__main__":
    app()
