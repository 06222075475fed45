# butaca_cli/main.py


import typer
from butaca_cli.auth.commands import app as auth_app

app = typer.Typer(help="Butaca10 command line client")
app.add_typer(auth_app, name="auth")

if __name__ == "__main__":
    app()
