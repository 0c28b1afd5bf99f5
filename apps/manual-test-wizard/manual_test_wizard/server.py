"""HTTP runtime serving the manual test walkthrough."""

from __future__ import annotations

import mimetypes
import socketserver
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable
from urllib.parse import parse_qs, unquote, urlsplit

import structlog

from .config import WizardSettings
from .persistence import InvalidResultFilename, ResultPersistenceError, ResultStore
from .session import WalkthroughSession
from .shutdown import ShutdownCoordinator
from .submission import SubmissionError, build_result, now_millis, parse_form
from .views import WizardViews

LOGGER = structlog.get_logger("manual_test_wizard")

STATIC_PREFIX = "/static/"


class ThreadedHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


class WizardServer:
    """Serves one walkthrough session and stops itself once it is complete."""

    def __init__(
        self,
        settings: WizardSettings,
        session: WalkthroughSession,
        *,
        store: ResultStore | None = None,
        views: WizardViews | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.settings = settings
        self.session = session
        self.store = store or ResultStore(settings.output_dir, settings.environment, settings.option_tag)
        self.views = views or WizardViews(settings.option_tag)
        self.shutdown = ShutdownCoordinator(self._drain, grace_delay=settings.grace_delay)
        self._clock = clock
        self._httpd: ThreadedHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._logger = LOGGER.bind(option_tag=settings.option_tag.value, environment=settings.environment)

    @property
    def port(self) -> int:
        if not self._httpd:
            return self.settings.port
        return self._httpd.server_address[1]

    def bind(self) -> None:
        self._logger.info("server_starting", host=self.settings.host, port=self.settings.port)
        self._httpd = ThreadedHTTPServer((self.settings.host, self.settings.port), self._build_handler_factory())
        self._logger = self._logger.bind(host=self._httpd.server_address[0], port=self.port)

    def serve_forever(self) -> None:
        """Serve in the calling thread until the shutdown coordinator drains the loop."""

        if not self._httpd:
            self.bind()
        assert self._httpd is not None
        self._logger.info("server_started", scenarios=self.session.total)
        print(f"Server started at http://localhost:{self.port}")
        try:
            self._httpd.serve_forever()
        finally:
            self._httpd.server_close()
            self._logger.info("server_stopped")

    def start(self) -> None:
        """Serve from a background thread."""

        if not self._httpd:
            self.bind()
        self._thread = threading.Thread(target=self.serve_forever, name="wizard-http", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if not self._httpd:
            return
        if not self._thread:
            self._httpd.server_close()
            return
        self._drain()
        self._thread.join(timeout=2)

    def _drain(self) -> None:
        if self._httpd:
            self._httpd.shutdown()

    def _build_handler_factory(self) -> type[BaseHTTPRequestHandler]:
        wizard = self
        handler_logger = self._logger

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:  # pragma: no cover - avoid stderr
                handler_logger.debug(
                    "http_trace",
                    client_ip=self.client_address[0],
                    message=format % args,
                )

            def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler requirement)
                self._handle()

            def do_POST(self) -> None:  # noqa: N802
                self._handle()

            def do_PUT(self) -> None:  # noqa: N802
                self._handle()

            def do_DELETE(self) -> None:  # noqa: N802
                self._handle()

            def do_PATCH(self) -> None:  # noqa: N802
                self._handle()

            def _handle(self) -> None:
                url = urlsplit(self.path)
                handler_logger.debug("request_received", method=self.command, path=url.path)
                try:
                    if url.path == "/generate":
                        if self.command != "POST":
                            self._respond_text(
                                HTTPStatus.METHOD_NOT_ALLOWED,
                                "Method Not Allowed",
                                extra_headers={"Allow": "POST"},
                            )
                            return
                        self._generate()
                    elif self.command != "GET":
                        self._respond_text(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed", extra_headers={"Allow": "GET"})
                    elif url.path == "/":
                        self._index()
                    elif url.path == "/download":
                        self._download(url.query)
                    elif url.path.startswith(STATIC_PREFIX):
                        self._static(url.path[len(STATIC_PREFIX):])
                    else:
                        self._respond_text(HTTPStatus.NOT_FOUND, "Not Found")
                except Exception:  # pragma: no cover - resilience path
                    handler_logger.exception("request_failed", method=self.command, path=url.path)
                    self._respond_text(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

            def _index(self) -> None:
                html, completed = wizard.views.render_current(wizard.session)
                self._respond(HTTPStatus.OK, html.encode("utf-8"), "text/html; charset=utf-8")
                handler_logger.info(
                    "scenario_served",
                    position=wizard.session.position,
                    total=wizard.session.total,
                    completed=completed,
                )
                if completed:
                    wizard.shutdown.request_shutdown()

            def _generate(self) -> None:
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                except ValueError:
                    self._respond_text(HTTPStatus.BAD_REQUEST, "Error parsing form data")
                    return
                if length > wizard.settings.max_body_bytes:
                    self.close_connection = True
                    self._respond_text(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, "Request body too large")
                    handler_logger.warning("submission_rejected", reason="body too large", content_length=length)
                    return

                body = self.rfile.read(length) if length > 0 else b""
                try:
                    form = parse_form(self.headers.get("Content-Type"), body)
                    record = build_result(
                        form,
                        accepted_types=wizard.settings.attachment_types,
                        clock=wizard._clock,
                    )
                except SubmissionError as exc:
                    handler_logger.warning("submission_rejected", reason=exc.message)
                    self._respond_text(exc.status, exc.message)
                    return

                try:
                    path = wizard.store.save(record)
                except ResultPersistenceError as exc:
                    handler_logger.error("result_save_failed", error=str(exc))
                    self._respond_text(HTTPStatus.INTERNAL_SERVER_ERROR, "Error saving file to disk")
                    return

                cursor = wizard.session.advance()
                handler_logger.info(
                    "submission_accepted",
                    name=record.name,
                    status=record.status.value,
                    file=path.name,
                    position=cursor,
                    total=wizard.session.total,
                )
                html = wizard.views.render_processing(path.name)
                self._respond(HTTPStatus.OK, html.encode("utf-8"), "text/html; charset=utf-8")

            def _download(self, query: str) -> None:
                filename = (parse_qs(query).get("filename") or [""])[0]
                if not filename:
                    self._respond_text(HTTPStatus.BAD_REQUEST, "Filename not specified")
                    return
                try:
                    path = wizard.store.resolve(filename)
                except InvalidResultFilename:
                    handler_logger.warning("download_rejected", filename=filename)
                    self._respond_text(HTTPStatus.BAD_REQUEST, "Invalid filename")
                    return
                if not path.is_file():
                    self._respond_text(HTTPStatus.NOT_FOUND, "File not found")
                    return
                self._respond(
                    HTTPStatus.OK,
                    path.read_bytes(),
                    "application/json",
                    extra_headers={"Content-Disposition": f'attachment; filename="{filename}"'},
                )

            def _static(self, relative: str) -> None:
                root = wizard.settings.static_dir.resolve()
                target = (root / unquote(relative)).resolve()
                if not target.is_relative_to(root) or not target.is_file():
                    self._respond_text(HTTPStatus.NOT_FOUND, "Not Found")
                    return
                content_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
                self._respond(HTTPStatus.OK, target.read_bytes(), content_type)

            def _respond_text(
                self,
                status: HTTPStatus,
                message: str,
                *,
                extra_headers: dict[str, str] | None = None,
            ) -> None:
                self._respond(status, f"{message}\n".encode("utf-8"), "text/plain; charset=utf-8", extra_headers=extra_headers)

            def _respond(
                self,
                status: HTTPStatus,
                body: bytes,
                content_type: str,
                *,
                extra_headers: dict[str, str] | None = None,
            ) -> None:
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                for key, value in (extra_headers or {}).items():
                    self.send_header(key, value)
                self.end_headers()
                self.wfile.write(body)

        return Handler
