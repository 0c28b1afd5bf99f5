"""Parsing of result submissions and construction of ResultRecords."""

from __future__ import annotations

import base64
import re
import time
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Callable, Mapping
from urllib.parse import unquote_plus

import python_multipart
import structlog
from python_multipart.multipart import Field, File

from .models import Attachment, Label, ResultRecord, ResultStatus

LOGGER = structlog.get_logger("manual_test_wizard")

MAX_BODY_BYTES = 20 << 20
ATTACHMENTS_FIELD = "attachments[]"
URLENCODED = "application/x-www-form-urlencoded"

# suffix -> MIME type of evidence files kept in results
DEFAULT_ATTACHMENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

_TIMESTAMP = re.compile(r"[+-]?[0-9]+", re.ASCII)
# start timestamps must fit a signed 64-bit integer
_TIMESTAMP_MIN = -(1 << 63)
_TIMESTAMP_MAX = (1 << 63) - 1


class SubmissionError(ValueError):
    """Raised when a submission cannot be accepted; carries the HTTP status to answer with."""

    def __init__(self, message: str, status: HTTPStatus = HTTPStatus.BAD_REQUEST) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class UploadedFile:
    filename: str
    content: bytes


@dataclass
class SubmissionForm:
    """Decoded form fields and uploaded files of one POST /generate request."""

    fields: dict[str, str] = field(default_factory=dict)
    files: list[UploadedFile] = field(default_factory=list)

    def value(self, name: str) -> str:
        return self.fields.get(name, "")


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def parse_form(content_type: str | None, body: bytes) -> SubmissionForm:
    """Decode a multipart or url-encoded request body held fully in memory."""

    if not content_type:
        raise SubmissionError("Error parsing form data: missing Content-Type")

    form = SubmissionForm()
    # python-multipart hands url-encoded fields over still percent-encoded
    urlencoded = content_type.split(";", 1)[0].strip().lower() == URLENCODED

    def on_field(item: Field) -> None:
        name = item.field_name.decode("utf-8", errors="replace")
        value = item.value.decode("utf-8", errors="replace") if item.value is not None else ""
        if urlencoded:
            name, value = unquote_plus(name), unquote_plus(value)
        form.fields.setdefault(name, value)

    # the parser finalizes the last part after on_file returns, so uploads stay open until it is done
    uploads: list[File] = []

    def on_file(item: File) -> None:
        uploads.append(item)

    headers = {"Content-Type": content_type, "Content-Length": str(len(body))}
    try:
        parser = python_multipart.create_form_parser(
            headers,
            on_field,
            on_file,
            config={"MAX_MEMORY_FILE_SIZE": MAX_BODY_BYTES, "MAX_BODY_SIZE": MAX_BODY_BYTES},
        )
        parser.write(body)
        parser.finalize()
        for item in uploads:
            name = (item.field_name or b"").decode("utf-8", errors="replace")
            filename = (item.file_name or b"").decode("utf-8", errors="replace")
            if name != ATTACHMENTS_FIELD or not filename:
                continue
            handle = item.file_object
            handle.seek(0)
            form.files.append(UploadedFile(filename=filename, content=handle.read()))
    except ValueError as exc:
        raise SubmissionError(f"Error parsing form data: {exc}") from exc
    finally:
        for item in uploads:
            item.close()
    return form


def parse_start_timestamp(raw: str, clock: Callable[[], int] = now_millis) -> int:
    """Return the submitted start time in epoch milliseconds, or now when it is absent."""

    raw = raw.strip()
    if not raw:
        return clock()
    if not _TIMESTAMP.fullmatch(raw):
        raise SubmissionError("Invalid start timestamp")
    value = int(raw)
    if not _TIMESTAMP_MIN <= value <= _TIMESTAMP_MAX:
        raise SubmissionError("Invalid start timestamp")
    return value


def parse_status(raw: str) -> ResultStatus:
    try:
        return ResultStatus(raw.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(status.value for status in ResultStatus)
        raise SubmissionError(f"Invalid test status {raw!r}, expected one of: {allowed}") from exc


def encode_attachments(
    files: list[UploadedFile],
    accepted_types: Mapping[str, str] = DEFAULT_ATTACHMENT_TYPES,
) -> list[Attachment]:
    """Base64 encode evidence files, dropping those whose suffix is not accepted."""

    attachments: list[Attachment] = []
    for upload in files:
        lowered = upload.filename.lower()
        mime_type = next((mime for suffix, mime in accepted_types.items() if lowered.endswith(suffix)), None)
        if mime_type is None:
            LOGGER.warning("attachment_dropped", filename=upload.filename, reason="unsupported file type")
            continue
        attachments.append(
            Attachment(
                name=upload.filename,
                content=base64.b64encode(upload.content).decode("ascii"),
                type=mime_type,
            )
        )
    return attachments


def build_labels(form: SubmissionForm) -> list[Label]:
    return [
        Label(name="feature", value=form.value("featureName")),
        Label(name="tag", value=form.value("testTag")),
        Label(name="tag", value="manual"),
        Label(name="tag", value=form.value("optionTag")),
        Label(name="comments", value=form.value("comments")),
    ]


def build_result(
    form: SubmissionForm,
    *,
    accepted_types: Mapping[str, str] = DEFAULT_ATTACHMENT_TYPES,
    clock: Callable[[], int] = now_millis,
) -> ResultRecord:
    """Turn a decoded submission into the ResultRecord that gets persisted."""

    start = parse_start_timestamp(form.value("startTimestamp"), clock)
    status = parse_status(form.value("testStatus"))
    attachments = encode_attachments(form.files, accepted_types)
    return ResultRecord(
        uuid=form.value("testTag"),
        name=form.value("testName"),
        status=status,
        attachments=attachments,
        labels=build_labels(form),
        start=start,
        stop=clock(),
    )
