import re
import typer

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def validate_email(email: str) -> bool:
    if not EMAIL_REGEX.match(email):
        typer.echo("Invalid email address.")
        return False
    return True

def validate_name(name: str) -> bool:
    if not 2 <= len(name.strip()) <= 100:
        typer.echo("Name must be between 2 and 100 characters.")
        return False
    return True

def validate_password(password: str) -> bool:
    """
    Validates password strength:
    - At least 6 characters
    - At least one letter
    - At least one number
    """
    if len(password) < 6:
        typer.echo("Password must be at least 6 characters long.")
        return False

    if not re.search(r"[a-zA-Z]", password):
        typer.echo("Password must contain at least one letter.")
        return False

    if not re.search(r"\d", password):
        typer.echo("Password must contain at least one number.")
        return False

    return True

def error_message(body: dict, default: str) -> str:
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    return default
