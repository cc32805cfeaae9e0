#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))

from pydantic import ValidationError
from sqlmodel import Session

from app.core.database import engine
from app.core.results import field_errors_from
from app.core.security import PasswordHasher
from app.schemas.auth import PasswordMatch
from app.services.sessions import SessionProvider
from app.services.users import UserStore
from app.core.config import settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Resetear password de un usuario por email")
    parser.add_argument("--email", required=True, help="Email del usuario")
    parser.add_argument("--password", required=True, help="Nueva contraseña")
    args = parser.parse_args()

    try:
        PasswordMatch(password=args.password, password_confirm=args.password)
    except ValidationError as exc:
        for field, message in field_errors_from(exc).items():
            print(f"❌ {field}: {message}")
        return 2

    with Session(engine) as session:
        users = UserStore(session)
        user = users.find_by_email(args.email)
        if not user:
            print(f"❌ Usuario no encontrado: {args.email}")
            return 1

        users.update_user(user.id, password_hash=PasswordHasher().hash(args.password), is_active=True)
        revoked = SessionProvider(session, settings).revoke_user_sessions(user.id)

    print(f"✅ Password actualizado para {args.email} ({revoked} sesiones revocadas)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
