"""
Command-line front end for the Fritter API.

Keeps the session cookie in a small JSON file between runs so that
`login` followed by `post` behaves like a signed-in browser tab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import requests

from fritter.client import DEFAULT_BASE_URL, FreetsApiError, FreetsClient

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_FILE = Path.home() / ".fritter_cookies.json"


def _load_session(cookie_file: Path) -> requests.Session:
    session = requests.Session()
    if cookie_file.exists():
        session.cookies.update(json.loads(cookie_file.read_text()))
    return session


def _save_session(session: requests.Session, cookie_file: Path) -> None:
    cookies = requests.utils.dict_from_cookiejar(session.cookies)
    cookie_file.write_text(json.dumps(cookies))


def _print_freet(freet: dict) -> None:
    flag = " [flagged]" if freet.get("selfFlagged") else ""
    print(f"{freet['_id']}  @{freet['author']}  {freet['dateModified']}{flag}")
    print(f"    {freet['content']}")
    if freet.get("flags"):
        print(f"    flags: {', '.join(freet['flags'])}")


def _print_upvote(upvote: dict) -> None:
    print(f"{upvote['_id']}  @{upvote['author']} upvoted {upvote['freetId']}  {upvote['dateCreated']}")


def run_command(client: FreetsClient, args: argparse.Namespace) -> None:
    if args.command == "signup":
        user = client.sign_up(args.username, args.password, args.birthday)
        print(f"✅ Signed up and logged in as {user['username']}.")
    elif args.command == "login":
        user = client.sign_in(args.username, args.password)
        print(f"✅ Logged in as {user['username']}.")
    elif args.command == "logout":
        print(f"✅ {client.sign_out()}")
    elif args.command == "whoami":
        user = client.whoami()
        print(user["username"] if user else "Not signed in.")
    elif args.command == "freets":
        for freet in client.list_freets(author=args.author):
            _print_freet(freet)
    elif args.command == "show":
        _print_freet(client.get_freet(args.freet_id))
    elif args.command == "post":
        flags = {f"flag_{i}": reason for i, reason in enumerate(args.flag or [])}
        freet = client.post_freet(args.content, flags)
        print(f"✅ Posted freet {freet['_id']}.")
    elif args.command == "delete":
        print(f"✅ {client.delete_freet(args.freet_id)}")
    elif args.command == "upvote":
        upvote = client.upvote(args.freet_id)
        print(f"✅ Upvote {upvote['_id']} created.")
    elif args.command == "unvote":
        print(f"✅ {client.remove_upvote(args.upvote_id)}")
    elif args.command == "upvotes":
        for upvote in client.list_upvotes(author=args.author, freet_id=args.freet_id):
            _print_upvote(upvote)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fritter command-line client")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API server URL")
    parser.add_argument(
        "--cookie-file",
        type=Path,
        default=DEFAULT_COOKIE_FILE,
        help="Where to keep the session cookie between runs",
    )
    parser.add_argument("--debug", action="store_true", help="Log every request")
    sub = parser.add_subparsers(dest="command", required=True)

    signup = sub.add_parser("signup", help="Create an account and log in")
    signup.add_argument("username")
    signup.add_argument("password")
    signup.add_argument("birthday", help="YYYY-MM-DD")

    login = sub.add_parser("login", help="Log in")
    login.add_argument("username")
    login.add_argument("password")

    sub.add_parser("logout", help="Log out")
    sub.add_parser("whoami", help="Show the signed-in user")

    freets = sub.add_parser("freets", help="List freets")
    freets.add_argument("--author", default=None)

    show = sub.add_parser("show", help="Show one freet, including flagged ones")
    show.add_argument("freet_id")

    post = sub.add_parser("post", help="Post a freet")
    post.add_argument("content")
    post.add_argument(
        "--flag",
        action="append",
        help="Self-flag the freet with a reason (repeatable)",
    )

    delete = sub.add_parser("delete", help="Delete one of your freets")
    delete.add_argument("freet_id")

    upvote = sub.add_parser("upvote", help="Upvote a freet")
    upvote.add_argument("freet_id")

    unvote = sub.add_parser("unvote", help="Remove one of your upvotes")
    unvote.add_argument("upvote_id")

    upvotes = sub.add_parser("upvotes", help="List upvotes")
    upvotes.add_argument("--author", default=None)
    upvotes.add_argument("--freet-id", default=None)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("fritter").setLevel(logging.DEBUG)

    session = _load_session(args.cookie_file)
    client = FreetsClient(base_url=args.base_url, session=session)
    try:
        run_command(client, args)
    except FreetsApiError as exc:
        print(f"❌ {exc.message}", file=sys.stderr)
        return 1
    except requests.ConnectionError:
        print(f"❌ Could not reach {args.base_url}.", file=sys.stderr)
        return 1
    finally:
        _save_session(session, args.cookie_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
