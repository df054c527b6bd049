#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import threading
import uuid
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

SEEDED_TOKENS: dict[str, dict[str, object]] = {
    "employer-token": {
        "id": "11111111-1111-1111-1111-111111111111",
        "email": "employer@example.com",
        "user_metadata": {"name": "Example Employer", "userType": "employer"},
    },
    "contractor-token": {
        "id": "22222222-2222-2222-2222-222222222222",
        "email": "contractor@example.com",
        "user_metadata": {"name": "Example Contractor", "userType": "contractor"},
    },
}


class MockSupabaseState:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.tokens: dict[str, dict[str, object]] = dict(SEEDED_TOKENS)
        self.emails: set[str] = {str(user["email"]) for user in SEEDED_TOKENS.values()}

    def create_user(self, payload: dict[str, object]) -> tuple[HTTPStatus, dict[str, object]]:
        email = payload.get("email")
        password = payload.get("password")
        if not isinstance(email, str) or not email or not isinstance(password, str) or len(password) < 6:
            return HTTPStatus.UNPROCESSABLE_ENTITY, {"msg": "email and a password of at least 6 characters are required"}
        with self.lock:
            if email in self.emails:
                return HTTPStatus.UNPROCESSABLE_ENTITY, {"msg": "A user with this email address has already been registered"}
            user = {
                "id": str(uuid.uuid4()),
                "email": email,
                "user_metadata": payload.get("user_metadata") or {},
            }
            self.emails.add(email)
            # No session endpoint: a created account authenticates with bearer "token:<email>".
            self.tokens[f"token:{email}"] = user
        return HTTPStatus.OK, user


STATE = MockSupabaseState()


class MockSupabaseHandler(BaseHTTPRequestHandler):
    server_version = "MockSupabase/1.0"

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        if self.path == "/healthz":
            self._write_json(HTTPStatus.OK, {"status": "ok"})
            return

        if self.path != "/auth/v1/user":
            self._write_json(HTTPStatus.NOT_FOUND, {"msg": "not found"})
            return

        authorization = self.headers.get("Authorization", "")
        if not authorization.lower().startswith("bearer "):
            self._write_json(HTTPStatus.UNAUTHORIZED, {"msg": "missing bearer token"})
            return

        token = authorization.split(" ", maxsplit=1)[1].strip()
        user = STATE.tokens.get(token)
        if user is None:
            self._write_json(HTTPStatus.UNAUTHORIZED, {"msg": "invalid token"})
            return

        self._write_json(HTTPStatus.OK, user)

    def do_POST(self) -> None:  # noqa: N802 - stdlib handler signature
        if self.path != "/auth/v1/admin/users":
            self._write_json(HTTPStatus.NOT_FOUND, {"msg": "not found"})
            return

        length = int(self.headers.get("Content-Length") or 0)
        try:
            payload = json.loads(self.rfile.read(length) or b"{}")
        except json.JSONDecodeError:
            self._write_json(HTTPStatus.BAD_REQUEST, {"msg": "invalid json"})
            return
        if not isinstance(payload, dict):
            self._write_json(HTTPStatus.BAD_REQUEST, {"msg": "invalid json"})
            return

        status, body = STATE.create_user(payload)
        self._write_json(status, body)

    def log_message(self, _: str, *args: object) -> None:
        # Keep logs terse for test runs.
        if args:
            print("mock-supabase:", *args)

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock Supabase auth user and admin-user endpoints.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54321)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), MockSupabaseHandler)
    print(f"mock-supabase listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
