"""CSV/JSON export and JSON import of token records."""

import csv
import io
import json
from collections.abc import Iterable
from datetime import date

from tokenbook.core.token import Tag, Token, TokenDraft
from tokenbook.exceptions import ImportFormatError

UTF8_BOM = "\ufeff"
CSV_HEADERS = ["Name", "Token", "Tag", "Added On"]
DEFAULT_IMPORT_NAME = "Imported Token"


def format_added_on(token: Token) -> str:
    return token.created_at.astimezone().strftime("%d-%m-%Y")


def export_csv(tokens: Iterable[Token]) -> str:
    """Spreadsheet-friendly CSV: BOM, CRLF rows, every field quoted."""
    buffer = io.StringIO()
    buffer.write(UTF8_BOM)
    # Header is written bare, rows are fully quoted
    buffer.write(",".join(CSV_HEADERS) + "\r\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    for token in tokens:
        writer.writerow(
            [
                token.name,
                token.value,
                token.tag.value if token.tag else "None",
                format_added_on(token),
            ]
        )
    return buffer.getvalue()


def export_json(tokens: Iterable[Token]) -> str:
    return json.dumps([token.to_record() for token in tokens], indent=2)


def export_filename(fmt: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"tokens-backup-{today.isoformat()}.{fmt}"


def parse_import(text: str) -> list[TokenDraft]:
    """Turn an exported JSON array back into create drafts.

    Accepts ``value`` or the legacy ``token`` key. Timestamps are dropped so
    the gateway stamps imported tokens with the import time. Records with
    no value are skipped.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid JSON: {e.msg}") from e

    if not isinstance(data, list):
        raise ImportFormatError("Invalid file format: expected a JSON array")

    drafts = []
    for record in data:
        if not isinstance(record, dict):
            continue
        value = record.get("value") or record.get("token")
        if not value:
            continue
        drafts.append(
            TokenDraft(
                name=record.get("name") or DEFAULT_IMPORT_NAME,
                value=str(value),
                tag=_known_tag(record.get("tag")),
            )
        )
    return drafts


def _known_tag(value: object) -> Tag | None:
    if not isinstance(value, str):
        return None
    try:
        return Tag(value.strip().lower())
    except ValueError:
        return None
