"""Local callback server for Plaid Link.

The server exposes exactly one route, ``/link`` or ``/relink``, and resolves a
single-use ``Future`` with whatever the browser posts back first:

- ``GET``: render the Link page embedding the link token
- ``POST /link``: ``public_token`` form field → result; missing → ``LinkError``
- ``POST /relink``: ``error`` form field → ``LinkError``; missing → success
- anything else → ``LinkError``
"""

import logging
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Any, Literal

from flask import Flask, render_template_string, request
from werkzeug.serving import BaseWSGIServer, make_server

from ..exceptions import LinkError
from .templates import LINK_PAGE, RELINK_PAGE

logger = logging.getLogger(__name__)

Flow = Literal["link", "relink"]

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def resolve(
    future: Future[Any], result: Any = None, error: Exception | None = None
) -> bool:
    """Resolve ``future`` unless something already did.

    Returns:
        bool: True if this call resolved the future
    """
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        logger.debug("Ignoring callback for an already completed link flow")
        return False
    return True


def create_callback_app(flow: Flow, link_token: str, future: Future[Any]) -> Flask:
    """Build the Flask app serving one link or relink flow.

    Args:
        flow: Which route to serve
        link_token: Token embedded in the rendered page
        future: Resolved with the flow's outcome

    Returns:
        Flask: The WSGI application
    """
    app = Flask(__name__)
    path = f"/{flow}"
    page = LINK_PAGE if flow == "link" else RELINK_PAGE

    @app.route(path, methods=_ALL_METHODS, provide_automatic_options=False)
    def callback() -> tuple[str, int]:
        if request.method == "GET":
            html = render_template_string(
                page, link_token=link_token, callback_path=path
            )
            return html, 200

        if request.method != "POST":
            resolve(future, error=LinkError("Invalid HTTP method"))
            return "method not allowed", 405

        if flow == "link":
            public_token = request.form.get("public_token", "")
            if public_token:
                resolve(future, result=public_token)
            else:
                resolve(future, error=LinkError("Empty public_token"))
        else:
            error = request.form.get("error", "")
            if error and error != "null":
                resolve(future, error=LinkError(error))
            else:
                resolve(future, result=True)

        return "ok", 200

    return app


class CallbackServer:
    """Serve a WSGI app from a daemon thread until ``shutdown`` is called."""

    def __init__(self, app: Flask, host: str, port: int):
        self.app = app
        self.host = host
        self.port = port
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None

    def url(self, path: str) -> str:
        host = "localhost" if self.host in ("127.0.0.1", "0.0.0.0") else self.host
        return f"http://{host}:{self.port}{path}"

    def start(self) -> None:
        """Bind the port and start serving.

        Raises:
            LinkError: If the port cannot be bound
        """
        try:
            self._server = make_server(self.host, self.port, self.app, threaded=True)
        except OSError as e:
            raise LinkError(f"Cannot listen on {self.host}:{self.port}: {e}") from e
        except SystemExit as e:
            # werkzeug reports bind failures by exiting instead of raising
            raise LinkError(f"Cannot listen on {self.host}:{self.port}") from e

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name=f"plaid-link-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Starting Plaid Link on port {self.port}...")

    def shutdown(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        logger.debug("Plaid Link server stopped")

    def __enter__(self) -> "CallbackServer":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
