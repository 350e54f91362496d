from trip_planner_api.app.core.db import get_connection
from trip_planner_api.app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

import reset_password


def test_password_hashing():
    hashed = hash_password("secret123")
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "garbage")


def test_token_roundtrip():
    token = create_access_token({"sub": "alex@example.com"})
    payload = decode_access_token(token)
    assert payload["sub"] == "alex@example.com"
    assert payload["exp"] > 0


def test_tampered_token_rejected():
    header, payload, signature = create_access_token({"sub": "alex@example.com"}).split(".")
    forged = create_access_token({"sub": "admin@example.com"}).split(".")[1]
    assert decode_access_token(f"{header}.{forged}.{signature}") is None
    assert decode_access_token("not-a-token") is None


def test_expired_token_rejected():
    token = create_access_token({"sub": "alex@example.com"}, expires_delta=-10)
    assert decode_access_token(token) is None


def test_reset_password_script(make_participant, database, capsys):
    make_participant("Alex")

    assert reset_password.main(["--db", str(database), "--email", "ALEX@example.com", "--password", "brandnew1"]) == 0

    conn = get_connection()
    try:
        stored = conn.execute("SELECT password FROM participants WHERE email = 'alex@example.com'").fetchone()[0]
    finally:
        conn.close()
    assert verify_password("brandnew1", stored)
    assert "Password updated" in capsys.readouterr().out


def test_reset_password_unknown_email(database):
    assert reset_password.main(["--db", str(database), "--email", "nobody@example.com", "--password", "brandnew1"]) == 2


def test_reset_password_short_password(database):
    assert reset_password.main(["--db", str(database), "--email", "alex@example.com", "--password", "abc"]) == 1
