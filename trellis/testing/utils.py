"""
Trellis Testing - ASGI scope and receive builders.
"""

from __future__ import annotations

from typing import List, Optional


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    scheme: str = "http",
    client: Optional[tuple] = None,
    server: Optional[tuple] = None,
) -> dict:
    """
    Build a minimal ASGI HTTP scope for testing.

    Args:
        method: HTTP method.
        path: Request path (may include ``?query``, which wins over
            *query_string*).
        query_string: Raw query string (without ``?``).
        headers: List of ``(name, value)`` tuples (strings or bytes).
        scheme: URL scheme (``http`` or ``https``).
        client: ``(host, port)`` tuple.
        server: ``(host, port)`` tuple.
    """
    if "?" in path:
        path, query_string = path.split("?", 1)

    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in headers or ():
        raw_headers.append((
            name.encode("latin-1") if isinstance(name, str) else name,
            value.encode("latin-1") if isinstance(value, str) else value,
        ))

    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": scheme,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": raw_headers,
        "client": client or ("127.0.0.1", 50000),
        "server": server or ("testserver", 80),
    }


def make_test_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """
    Create an ASGI receive callable.

    Once the body is consumed, further calls report ``http.disconnect``.
    """
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive
