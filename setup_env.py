import os
import secrets

def generate_secrets():
    print("Generating JWT secret and password pepper...")
    jwt_secret = secrets.token_urlsafe(64)
    pepper = secrets.token_urlsafe(32)
    return jwt_secret, pepper

def render_env(env_content: str, jwt_secret: str, pepper: str) -> str:
    new_lines = []
    for line in env_content.splitlines():
        if line.startswith("JWT_SECRET="):
            new_lines.append(f'JWT_SECRET="{jwt_secret}"')
        elif line.startswith("PASSWORD_PEPPER="):
            new_lines.append(f'PASSWORD_PEPPER="{pepper}"')
        else:
            new_lines.append(line)
    return "\n".join(new_lines) + "\n"

def setup_env():
    if os.path.exists(".env"):
        response = input("A .env file already exists. Overwrite it? (y/N): ")
        if response.lower() != 'y':
            print("Aborted.")
            return

    if not os.path.exists(".env.example"):
        print("Error: .env.example not found.")
        return

    print("Reading .env.example...")
    with open(".env.example", "r") as f:
        env_content = f.read()

    jwt_secret, pepper = generate_secrets()

    with open(".env", "w") as f:
        f.write(render_env(env_content, jwt_secret, pepper))

    print("SUCCESS: .env file created with new secrets.")

if __name__ == "__main__":
    setup_env()
