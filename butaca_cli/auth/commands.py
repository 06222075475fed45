import typer

from butaca_cli.core.session import save_tokens, load_token, load_refresh_token, clear_token, is_logged_in
from butaca_cli.core.api import api_register, api_login, api_logout, api_refresh, api_get_me
from butaca_cli.core.utils import validate_email, validate_name, validate_password, error_message


app = typer.Typer(help="Authentication commands (register, login, logout, refresh, whoami)")


def _store_session(body: dict) -> dict:
    tokens = body.get("tokens") or {}
    save_tokens(tokens.get("access_token"), tokens.get("refresh_token"))
    return body.get("user") or {}


@app.command("register")
def register(
    name: str = typer.Option(None, "--name", "-n", help="Display name"),
    email: str = typer.Option(None, "--email", "-e", help="Email"),
    avatar: str = typer.Option(None, "--avatar", help="Profile image URL"),
):
    """
    Create an account and start a session. Only allowed if no session is active.
    """
    if is_logged_in():
        typer.echo("Session already active. Logout first.")
        raise typer.Exit(code=1)

    if name is None:
        name = typer.prompt("Name")
    if not validate_name(name):
        raise typer.Exit(code=1)

    if email is None:
        email = typer.prompt("Email")
    email = email.strip().lower()
    if not validate_email(email):
        raise typer.Exit(code=1)

    password = typer.prompt("Password", hide_input=True)
    password_confirm = typer.prompt("Confirm password", hide_input=True)
    if password != password_confirm:
        typer.echo("Passwords do not match.")
        raise typer.Exit(code=1)
    if not validate_password(password):
        raise typer.Exit(code=1)

    status_code, body = api_register(name, email, password, avatar)
    if status_code == 0:
        typer.echo("Registration failed (backend unreachable).")
        raise typer.Exit(code=1)
    if status_code != 201:
        typer.echo(f"Registration failed: {error_message(body, 'API error')}")
        raise typer.Exit(code=1)

    user = _store_session(body)
    typer.echo(f"Account created. Logged in as '{user.get('email', email)}'.")


@app.command("login")
def login(
    email: str = typer.Option(None, "--email", "-e", help="Email"),
):
    """
    Login to the system. Only allowed if no session is active.
    """
    if is_logged_in():
        typer.echo("Session already active. Logout first to remove current session token.")
        raise typer.Exit(code=1)

    if email is None:
        email = typer.prompt("Email")
    email = email.strip().lower()
    if not validate_email(email):
        raise typer.Exit(code=1)

    password = typer.prompt("Password", hide_input=True)

    status_code, body = api_login(email, password)
    if status_code == 429:
        typer.echo("Too many failed attempts. Try again later.")
        raise typer.Exit(code=1)
    if status_code != 200:
        typer.echo("Login failed (invalid credentials or API error).")
        raise typer.Exit(code=1)

    user = _store_session(body)
    typer.echo(f"Login successful as '{user.get('name', email)}'.")


@app.command("logout")
def logout(
    all_sessions: bool = typer.Option(False, "--all", help="Revoke every session of this account"),
):
    """
    End session and delete local tokens.
    """
    token = load_token()
    if token:
        if api_logout(token, load_refresh_token(), logout_all=all_sessions):
            typer.echo("Logged out from backend.")
        else:
            typer.echo("Warning: Failed to logout from backend. The token may have had already expired.")

    clear_token()
    typer.echo("Session ended.")


def _refresh_session() -> bool:
    refresh_token = load_refresh_token()
    if not refresh_token:
        return False
    tokens = api_refresh(refresh_token)
    if not tokens:
        return False
    save_tokens(tokens["access_token"], tokens["refresh_token"])
    return True


@app.command("refresh")
def refresh():
    """
    Exchange the stored refresh token for a new token pair.
    """
    if not is_logged_in():
        typer.echo("No active session. Login first.")
        raise typer.Exit(code=1)

    if not _refresh_session():
        clear_token()
        typer.echo("Session expired. Login again.")
        raise typer.Exit(code=1)

    typer.echo("Session refreshed.")


@app.command("whoami")
def whoami():
    """
    Show the account behind the current session, refreshing it once if needed.
    """
    token = load_token()
    if not token:
        typer.echo("No active session. Login first.")
        raise typer.Exit(code=1)

    status_code, user = api_get_me(token)
    if status_code == 401 and _refresh_session():
        status_code, user = api_get_me(load_token())

    if status_code == 401:
        clear_token()
        typer.echo("Session expired. Login again.")
        raise typer.Exit(code=1)
    if user is None:
        typer.echo("Could not reach the backend.")
        raise typer.Exit(code=1)

    typer.echo(f"{user['name']} <{user['email']}> (id {user['id']})")
