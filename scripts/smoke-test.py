#!/usr/bin/env python3
"""
Signup smoke test for Scholar AI.

Runs the full account flow against a live server: signup, OTP lookup,
verification and login.
Usage:
    python scripts/smoke-test.py
    python scripts/smoke-test.py --base-url http://localhost:5000
    python scripts/smoke-test.py --mongodb-uri mongodb://localhost:27017

The OTP is read from GET /__test/last-otp (server started with ENVIRONMENT=test)
unless --mongodb-uri is given, in which case it is read from the users
collection and the throwaway account is deleted afterwards.

Environment variables (alternative to CLI args):
    SMOKE_BASE_URL, MONGODB_URI, MONGODB_DB_NAME, MONGODB_USER_COLLECTION
"""

import argparse
import json
import os
import sys
import time
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from pymongo import MongoClient

# --- Formatting helpers ---

GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
RESET = "\033[0m"
BOLD = "\033[1m"

passed = 0
failed = 0


def ok(name, detail=""):
    global passed
    passed += 1
    msg = f"  {GREEN}PASS{RESET}  {name}"
    if detail:
        msg += f"  ({detail})"
    print(msg)


def fail(name, detail=""):
    global failed
    failed += 1
    msg = f"  {RED}FAIL{RESET}  {name}"
    if detail:
        msg += f"  : {detail}"
    print(msg)


# --- HTTP helpers ---

def _send(req, timeout):
    try:
        with urlopen(req, timeout=timeout) as resp:
            return resp.status, json.loads(resp.read().decode())
    except HTTPError as e:
        try:
            body = json.loads(e.read().decode())
        except ValueError:
            body = None
        return e.code, body
    except (URLError, TimeoutError) as e:
        return 0, {"message": str(e)}


def api_get(base, path, params=None, timeout=30):
    """GET request, returns (status_code, json_body | None)."""
    url = f"{base}{path}"
    if params:
        url += "?" + urlencode(params)
    return _send(Request(url, method="GET"), timeout)


def api_post_json(base, path, data, timeout=30):
    """POST JSON data, returns (status_code, json_body | None)."""
    req = Request(
        f"{base}{path}",
        data=json.dumps(data).encode(),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    return _send(req, timeout)


def _message(body):
    return body.get("message", "") if isinstance(body, dict) else ""


# --- OTP sources ---

def otp_from_test_route(base, email):
    code, body = api_get(base, "/__test/last-otp", {"email": email})
    if code == 404:
        raise RuntimeError("server is not running with ENVIRONMENT=test; pass --mongodb-uri instead")
    if code != 200:
        raise RuntimeError(f"last-otp returned {code}")
    return body.get("otp")


def otp_from_mongo(users, email):
    user = users.find_one({"email": email})
    return user.get("otp") if user else None


# --- Flow ---

def check_health(base):
    print(f"\n{BOLD}Health{RESET}")
    code, body = api_get(base, "/api/health")
    if code == 200 and body:
        ok("GET /api/health", f"mongoConnected={body.get('mongoConnected')} memoryUsers={body.get('memoryUsers')}")
    else:
        fail("GET /api/health", f"code={code}")


def run_signup_flow(base, users=None):
    print(f"\n{BOLD}Signup -> verify -> login{RESET}")
    email = f"verify_{int(time.time() * 1000)}@example.com"
    password = "testpass123"

    code, body = api_post_json(base, "/api/signup", {"name": "Verify User", "email": email, "password": password})
    if code != 200:
        fail("POST /api/signup", f"code={code} {_message(body)}")
        return
    ok("POST /api/signup", _message(body))

    try:
        otp = otp_from_mongo(users, email) if users is not None else otp_from_test_route(base, email)
    except RuntimeError as e:
        fail("OTP lookup", str(e))
        return
    if not otp:
        fail("OTP lookup", "no OTP stored for the new account")
        return
    ok("OTP lookup", "from MongoDB" if users is not None else "from /__test/last-otp")

    try:
        code, body = api_post_json(base, "/api/verify-otp", {"email": email, "otp": otp})
        if code == 200:
            ok("POST /api/verify-otp")
        else:
            fail("POST /api/verify-otp", f"code={code} {_message(body)}")
            return

        code, body = api_post_json(base, "/api/login", {"email": email, "password": password})
        if code == 200 and body and body.get("user", {}).get("email") == email:
            ok("POST /api/login", f"user={body['user']['name']}")
        else:
            fail("POST /api/login", f"code={code} {_message(body)}")
    finally:
        if users is not None:
            users.delete_one({"email": email})
            print(f"  {YELLOW}cleaned up{RESET} {email}")


# --- Main ---

def main():
    parser = argparse.ArgumentParser(description="Scholar AI signup smoke test")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("SMOKE_BASE_URL", "http://localhost:5000"),
        help="Base URL of the Scholar AI API",
    )
    parser.add_argument("--mongodb-uri", default=os.environ.get("MONGODB_URI"), help="Read OTPs from this MongoDB")
    parser.add_argument("--db-name", default=os.environ.get("MONGODB_DB_NAME", "scholar_ai"))
    parser.add_argument("--collection", default=os.environ.get("MONGODB_USER_COLLECTION", "users"))
    args = parser.parse_args()

    base = args.base_url.rstrip("/")
    print(f"{BOLD}{CYAN}=== Scholar AI Signup Smoke Test ==={RESET}")
    print(f"Target: {base}")
    print(f"Time:   {time.strftime('%Y-%m-%d %H:%M:%S UTC', time.gmtime())}")

    check_health(base)

    if args.mongodb_uri:
        client = MongoClient(args.mongodb_uri, serverSelectionTimeoutMS=5000)
        try:
            run_signup_flow(base, client[args.db_name][args.collection])
        finally:
            client.close()
    else:
        run_signup_flow(base)

    print(f"\n{BOLD}{'=' * 45}{RESET}")
    color = GREEN if failed == 0 else RED
    print(f"{color}{BOLD}{passed} passed{RESET}, {RED if failed else ''}{failed} failed{RESET}")
    print()
    sys.exit(1 if failed > 0 else 0)


if __name__ == "__main__":
    main()
