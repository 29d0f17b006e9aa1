"""CSV parsing and the ``has_email`` column rewrite."""

from __future__ import annotations

import csv
import io
import re
from typing import Callable, Iterable, Sequence

from .errors import MalformedInputError

Record = list[str]
FieldRule = Callable[[str], bool]

EMAIL_COLUMN = "has_email"

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def is_valid_email(value: str) -> bool:
    email = (value or "").strip()
    if len(email) < 5 or len(email) > 100:
        return False
    return _EMAIL_RE.fullmatch(email) is not None


def is_valid_email_strict(value: str) -> bool:
    if not is_valid_email(value):
        return False
    email = value.strip()
    if ".." in email:
        return False
    local, sep, domain = email.partition("@")
    if not sep or "@" in domain:
        return False
    if not local or len(local) > 64:
        return False
    if not domain or len(domain) > 255 or "." not in domain:
        return False
    return not (domain[0] in ".-" or domain[-1] in ".-")


def is_empty_row(record: Sequence[str]) -> bool:
    return all(not field.strip() for field in record)


_CSV_TOKENS = re.compile(r'[",\r\n]')


def _reject_bare_quotes(text: str) -> None:
    """Quotes are only allowed around a whole field, as RFC 4180 readers expect."""
    if '"' not in text:
        return
    line = 1
    field_start = 0
    in_quotes = False
    skip = -1
    for match in _CSV_TOKENS.finditer(text):
        pos = match.start()
        char = match.group()
        if char == "\n":
            line += 1
        if pos == skip:
            continue
        if in_quotes:
            if char == '"':
                if text.startswith('"', pos + 1):
                    skip = pos + 1
                else:
                    in_quotes = False
            continue
        if char == '"':
            if pos != field_start:
                raise MalformedInputError(f'failed to read CSV file: line {line}: bare " in non-quoted field')
            in_quotes = True
        else:
            field_start = pos + 1


def parse_records(data: bytes) -> list[Record]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInputError(f"failed to read CSV file: {exc}") from exc

    _reject_bare_quotes(text)
    # A single field may span the whole upload.
    csv.field_size_limit(max(csv.field_size_limit(), len(text) + 1))
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        # Blank lines carry no record.
        return [row for row in reader if row]
    except csv.Error as exc:
        raise MalformedInputError(f"failed to read CSV file: line {reader.line_num}: {exc}") from exc


def flag_record(record: Sequence[str], rule: FieldRule = is_valid_email) -> str:
    matched = any(rule(field.strip()) for field in record)
    return "true" if matched else "false"


def transform_records(
    records: Sequence[Sequence[str]],
    rule: FieldRule = is_valid_email,
    column: str = EMAIL_COLUMN,
) -> list[Record]:
    """Append ``column`` to the header and a true/false flag to each data row.

    All-blank data rows are copied through without the extra field, so they
    end up one field shorter than the header.
    """
    if not records:
        return []

    processed: list[Record] = [[*records[0], column]]
    for record in records[1:]:
        if is_empty_row(record):
            processed.append(list(record))
            continue
        processed.append([*record, flag_record(record, rule)])
    return processed


def serialize_records(records: Iterable[Sequence[str]]) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(records)
    return buffer.getvalue().encode("utf-8")
