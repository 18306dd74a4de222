"""Vercel serverless function serving the meeting poll page."""

import hmac
import json
import logging
import sys
from pathlib import Path
from urllib.parse import parse_qs

# Add the project root to the path so we can import poll modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from poll.config import PollConfig, load_config
from poll.identity import read_voter_name, voter_cookie
from poll.models import Submission
from poll.render import render_page
from poll.store import VoteStore
from poll.submit import MSG_SAVED, SubmissionError, submit_vote
from poll.tally import summarize_poll

logger = logging.getLogger(__name__)

CONFIG = load_config()


def handler(request):
    """Handle incoming requests to the poll page.

    Accepts:
    - GET: render the voting page; ?admin[=secret] renders the admin view,
      ?admin[=secret]&format=json returns the aggregated results as JSON
    - POST form (name, email, primary[], secondary[]): submit a vote and
      re-render the page
    - POST JSON {"name", "email", "primary", "secondary"}: submit a vote and
      return the stored vote as JSON
    """
    if request.method not in ("GET", "POST"):
        return create_response(
            {"error": "Method not allowed. Use GET or POST."},
            status=405,
        )

    try:
        return handle_request(request, CONFIG)
    except Exception as e:
        logger.error("Error handling poll request: %s", e, exc_info=True)
        return create_response(
            {"error": "Internal error"},
            status=500,
        )


def handle_request(request, config: PollConfig):
    """Serve one request against the given configuration."""
    headers = {k.lower(): v for k, v in (request.headers or {}).items()}
    args = request.args or {}
    store = VoteStore(config.db_path)

    voter_name = read_voter_name(headers.get("cookie"), config.cookie_name)
    is_admin = check_admin(args, config.admin_secret)
    current_voter = store.get_voter_by_name(voter_name) if voter_name else None
    message = ""
    message_type = ""
    extra_headers = {}

    if request.method == "POST":
        content_type = headers.get("content-type", "")
        ip = client_address(request, headers)
        user_agent = headers.get("user-agent") or "unknown"

        if "application/json" in content_type:
            return submit_json(request, config, store, ip, user_agent)

        if "application/x-www-form-urlencoded" not in content_type:
            return create_response(
                {"error": f"Unsupported content type: {content_type}"},
                status=400,
            )

        try:
            form_body = (request.body or b"").decode("utf-8")
        except UnicodeDecodeError:
            return create_response(
                {"error": "Request body is not valid UTF-8"},
                status=400,
            )
        fields = parse_qs(form_body, keep_blank_values=True)
        if "name" in fields:
            submission = Submission(
                name=fields["name"][0],
                email=fields.get("email", [""])[0],
                primary=_form_list(fields, "primary"),
                secondary=_form_list(fields, "secondary"),
            )
            try:
                current_voter = submit_vote(store, submission, ip, user_agent)
            except SubmissionError as e:
                message = str(e)
                message_type = "error"
            else:
                voter_name = current_voter.name
                message = MSG_SAVED
                message_type = "success"
                extra_headers["Set-Cookie"] = voter_cookie(
                    voter_name, config.cookie_name, config.cookie_max_age
                )

    summary = summarize_poll(config, store.get_all_votes())

    if request.method == "GET" and args.get("format") == "json":
        if not is_admin:
            return create_response({"error": "Forbidden"}, status=403)
        return create_response(summary.to_dict())

    page = render_page(
        config,
        summary,
        current_voter=current_voter,
        voter_name=voter_name,
        is_admin=is_admin,
        message=message,
        message_type=message_type,
    )
    return create_response(
        page,
        headers={"Content-Type": "text/html; charset=utf-8", **extra_headers},
    )


def submit_json(request, config: PollConfig, store: VoteStore, ip: str, user_agent: str):
    """Submit a vote sent as a JSON body and answer with JSON."""
    try:
        data = json.loads((request.body or b"").decode("utf-8"))
    except UnicodeDecodeError:
        return create_response({"error": "Request body is not valid UTF-8"}, status=400)
    except json.JSONDecodeError as e:
        return create_response({"error": f"Invalid JSON: {e}"}, status=400)
    if not isinstance(data, dict):
        return create_response({"error": "Expected a JSON object"}, status=400)

    submission = Submission(
        name=str(data.get("name") or ""),
        email=str(data.get("email") or ""),
        primary=_as_list(data.get("primary")),
        secondary=_as_list(data.get("secondary")),
    )
    try:
        vote = submit_vote(store, submission, ip, user_agent)
    except SubmissionError as e:
        return create_response({"error": str(e)}, status=400)

    return create_response(
        {"message": MSG_SAVED, "vote": vote.to_dict()},
        headers={"Set-Cookie": voter_cookie(vote.name, config.cookie_name, config.cookie_max_age)},
    )


def check_admin(args, admin_secret: str) -> bool:
    """Whether the admin view was requested and, if a secret is set, unlocked."""
    if "admin" not in args:
        return False
    if not admin_secret:
        return True
    given = args.get("admin") or ""
    if hmac.compare_digest(given.encode("utf-8"), admin_secret.encode("utf-8")):
        return True
    logger.warning("Rejected admin request with wrong secret")
    return False


def client_address(request, headers: dict) -> str:
    """Origin address: first X-Forwarded-For hop, else the peer address."""
    forwarded = headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return getattr(request, "remote_addr", None) or "unknown"


def create_response(body, status: int = 200, headers: dict = None):
    """Create a response object for Vercel."""
    response_headers = {
        "Content-Type": "application/json",
    }
    if headers:
        response_headers.update(headers)

    if isinstance(body, dict):
        body = json.dumps(body)

    # Return in format expected by Vercel Python runtime
    return {
        "statusCode": status,
        "headers": response_headers,
        "body": body,
    }


def _as_list(value) -> list[str]:
    """Slot selections from JSON: a list, a single string, or nothing.

    Any other JSON type counts as no selection.
    """
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return []


def _form_list(fields: dict[str, list[str]], key: str) -> list[str]:
    """Non-empty values posted as key[] (or plain key)."""
    values = fields.get(f"{key}[]", []) + fields.get(key, [])
    return [v for v in values if v]
