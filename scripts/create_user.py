"""Utility script to create a user and print a push-channel token for it."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from campus_notify.domain.entities import User
from campus_notify.infrastructure.database import SessionLocal, initialize_database
from campus_notify.infrastructure.repositories import UserRepository
from campus_notify.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a user for local testing of the notification service.",
    )
    parser.add_argument("--username", default="estudiante", help="Nombre de usuario")
    parser.add_argument(
        "--email",
        default="estudiante@example.com",
        help="Correo electrónico del usuario (por defecto: estudiante@example.com)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    initialize_database()

    session = SessionLocal()
    try:
        user = UserRepository(session).create(
            User(id=None, username=args.username, email=args.email)
        )
    except ValueError as exc:
        session.rollback()
        raise SystemExit(f"No se pudo crear el usuario: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Error al guardar el usuario en la base de datos: {exc}") from exc
    else:
        print(
            "Usuario creado exitosamente:\n"
            f"  ID: {user.id}\n"
            f"  Usuario: {user.username}\n"
            f"  Email: {user.email}\n"
            f"  Token: {create_access_token(user.id)}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
