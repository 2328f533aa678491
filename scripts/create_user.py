"""
Create a login account, typically the first manager.

Usage:
    python scripts/create_user.py <username> <password> [--role "Team Leader"] [--full-name NAME] [--email EMAIL]
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from worklog.db import Base, SessionLocal, engine
from worklog.errors import ValidationError
from worklog.models.models import ROLE_MANAGER, ROLE_TEAM_LEADER
from worklog.services.users import create_user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a daily work log user")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("--role", default=ROLE_MANAGER, choices=[ROLE_MANAGER, ROLE_TEAM_LEADER])
    parser.add_argument("--full-name", default=None)
    parser.add_argument("--email", default=None)
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_user(db, args.username, args.password, args.role, args.full_name, args.email)
    except ValidationError as e:
        for err in e.errors:
            print(f"{err['field']}: {err['message']}", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created {user.role} '{user.username}' ({user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
