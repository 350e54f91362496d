#!/usr/bin/env python3
"""
Reset a participant's password in the Trip Planner SQLite database.

The script never reads or reveals existing passwords.  It stores a new
hash, in the same format the API uses, for the given e-mail address.

Usage:
    python reset_password.py --db ./trip_planner_api/trip_planner.db --email admin@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
If --db is omitted, ``DATABASE_URL`` is used as the API would.
"""

import argparse
import getpass
import os
import sys

from trip_planner_api.app.core.config import settings
from trip_planner_api.app.core.db import get_connection
from trip_planner_api.app.core.security import hash_password


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Reset a trip participant's password (SQLite).")
    ap.add_argument("--db", help="Path to SQLite DB file (defaults to DATABASE_URL)")
    ap.add_argument("--email", required=True, help="Participant e-mail to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args(argv)

    if args.db:
        if not os.path.exists(args.db):
            print(f"[!] DB not found: {args.db}", file=sys.stderr)
            return 1
        settings.database_url = os.path.abspath(args.db)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        return 1

    email = args.email.strip().lower()
    conn = get_connection()
    try:
        row = conn.execute("SELECT id FROM participants WHERE email = ?", (email,)).fetchone()
        if not row:
            print(f"[!] No participant found with email: {email}", file=sys.stderr)
            return 2
        conn.execute(
            "UPDATE participants SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (hash_password(new_password), row["id"]),
        )
        conn.commit()
    finally:
        conn.close()
    print(f"[+] Password updated for participant: {email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
