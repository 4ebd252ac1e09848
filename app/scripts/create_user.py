"""
Create an account (and provision its profile and welcome bonus). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD USERNAME [--avatar-url URL]
Example:
  python -m app.scripts.create_user alice@example.com your-secure-password alice_01
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.services.accounts import create_account
from app.services.provisioning import ProvisioningFailure

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Celflicks account.")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("username", help="Username (3-20 chars: letters, digits, _ or -)")
    parser.add_argument("--avatar-url", default=None, help="Avatar URL (default: generated)")
    args = parser.parse_args(argv)

    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    metadata = {"username": args.username}
    if args.avatar_url:
        metadata["avatar_url"] = args.avatar_url

    db = SessionLocal()
    try:
        result = create_account(db, args.email, args.password, metadata, get_settings())
    except ProvisioningFailure as e:
        print(f"Could not create account: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Account creation failed: %s", e)
        return 1
    finally:
        db.close()

    print(
        f"Created account '{result.email}' with username '{result.profile.username}' "
        f"and balance {result.profile.balance}."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
