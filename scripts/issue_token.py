"""Utility script to issue an identity token for local testing."""

from __future__ import annotations

import argparse
from datetime import timedelta

from app.domain.entities import ROLE_ADMIN, ROLE_ASSESSOR, ROLE_CLIENT, Identity
from app.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for token creation."""

    parser = argparse.ArgumentParser(
        description="Issue a signed identity token for the notification service.",
    )
    parser.add_argument("recipient_id", help="Identifier of the recipient")
    parser.add_argument(
        "--role",
        default=ROLE_CLIENT,
        choices=[ROLE_ADMIN, ROLE_ASSESSOR, ROLE_CLIENT],
        help="Role carried by the token (default: client)",
    )
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser.parse_args()


def main() -> None:
    """Print a token for the provided recipient."""

    args = parse_args()
    if args.minutes is not None and args.minutes <= 0:
        raise SystemExit("--minutes must be positive")
    expires = timedelta(minutes=args.minutes) if args.minutes else None
    identity = Identity(recipient_id=args.recipient_id, role=args.role)
    print(create_access_token(identity, expires_delta=expires))


if __name__ == "__main__":
    main()
