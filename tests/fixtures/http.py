"""Helpers for building canned ``requests`` responses and sessions."""

import json
from typing import Any, Optional
from unittest.mock import Mock

import requests


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    content_type: str = "application/json",
    url: str = "https://test.invalid/",
) -> requests.Response:
    """A real Response object carrying the given status and body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response.url = url
    response.encoding = "utf-8"
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
    else:
        response._content = (text or "").encode("utf-8")
    if content_type:
        response.headers["Content-Type"] = content_type
    return response


def mock_session(*responses: requests.Response) -> Mock:
    """
    A Session mock whose request/get/post methods return ``responses`` in order.

    A single response is returned for every call.
    """
    session = Mock(spec=requests.Session)
    for method in ("request", "get", "post", "put", "delete"):
        target = getattr(session, method)
        if len(responses) == 1:
            target.return_value = responses[0]
        else:
            target.side_effect = list(responses)
    return session
