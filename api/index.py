"""Vercel serverless entrypoint for the stylize, train and status functions.

Routes::

    POST /stylize                        {image, style, imageId}
    POST /train                          {training_data_url, trigger_word, session_id}
    GET  /status/<user_id>/<trigger>     -> {session_id, status, progress}

Every response carries permissive CORS headers; OPTIONS preflights get an
empty 200.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import unquote

from dotenv import load_dotenv

from stylizer import functions
from stylizer.config import Settings
from stylizer.providers import ReplicateTrainer, get_provider
from stylizer.storage import create_store

load_dotenv()
logging.basicConfig(
    level=Settings.from_env().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

_STATUS_ROUTE = re.compile(r"^(?:/api)?/status/([^/]+)/([^/]+)/?$")
_POST_ROUTE = re.compile(r"^(?:/api)?/(stylize|train)/?$")


def _response(status: int, body: dict[str, Any] | None) -> dict[str, Any]:
    headers = dict(CORS_HEADERS)
    if body is None:
        return {"statusCode": status, "headers": headers, "body": ""}
    headers["content-type"] = "application/json"
    return {"statusCode": status, "headers": headers, "body": json.dumps(body)}


def _field(request: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(request, dict) and name in request:
            return request[name]
        if hasattr(request, name):
            return getattr(request, name)
    return default


def _json_body(request: Any) -> dict[str, Any]:
    raw = _field(request, "body", default=None)
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _trainer(settings: Settings) -> ReplicateTrainer:
    return ReplicateTrainer(
        destination=settings.replicate_destination,
        api_token=settings.replicate_api_token,
        trainer=settings.replicate_trainer,
        trainer_version=settings.replicate_trainer_version,
    )


def dispatch(method: str, path: str, payload: dict[str, Any], settings: Settings) -> tuple[int, dict[str, Any]]:
    """Route a request to its function. Raises for configuration problems."""
    post = _POST_ROUTE.match(path)
    if method == "POST" and post:
        if post.group(1) == "stylize":
            return functions.stylize(payload, settings)
        return functions.start_training(payload, settings, create_store(settings, admin=True), _trainer(settings))

    status = _STATUS_ROUTE.match(path)
    if method == "GET" and status:
        user_id, trigger_word = (unquote(part) for part in status.groups())
        return functions.training_status(
            user_id,
            trigger_word,
            create_store(settings, admin=True),
            _trainer(settings),
            lambda version: get_provider("replicate", model=version, api_token=settings.replicate_api_token),
        )

    return 404, {"error": f"No route for {method} {path}"}


def handler(request):
    """Vercel Python serverless function handler."""
    method = str(_field(request, "method", "httpMethod", default="GET")).upper()
    path = str(_field(request, "path", "url", default="/")).split("?", 1)[0]

    if method == "OPTIONS":
        return _response(200, None)

    try:
        payload = _json_body(request) if method == "POST" else {}
    except ValueError as e:
        return _response(400, {"error": f"Invalid JSON body: {e}"})

    try:
        status, body = dispatch(method, path, payload, Settings.from_env())
    except Exception as e:
        logger.exception("%s %s failed", method, path)
        return _response(500, {"error": str(e)})

    return _response(status, body)
