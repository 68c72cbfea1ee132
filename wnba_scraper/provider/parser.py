"""Payload parser: turns raw provider files into validated records.

Pages are decoded as CSV unless the response or URL says JSON. Every row is
validated against the category's record model; the first bad row aborts the
parse with a ``ParseError`` naming its index and field. Rows are never
dropped, and output keeps payload order (play-by-play relies on it).
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from ..errors import ParseError
from ..logging import logger
from ..models import RECORD_TYPES, Category, ProviderRecord
from .fetcher import RawPage, RawPayload

# JSON envelopes some provider mirrors wrap their rows in
_JSON_ROW_KEYS = ("items", "data", "rows")


def _is_json(page: RawPage) -> bool:
    content_type = (page.content_type or "").lower()
    if "json" in content_type:
        return True
    return page.url.split("?", 1)[0].lower().endswith(".json")


def _field_from_error(exc: ValidationError) -> tuple[str | None, str]:
    error = exc.errors()[0]
    loc = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
    return (loc or None), error.get("msg", str(exc))


class PayloadParser:
    """Structural validation for each data category."""

    def parse(self, category: Category, payload: RawPayload) -> list[ProviderRecord]:
        if payload.category != category:
            raise ParseError(
                category,
                None,
                None,
                f"payload belongs to category {payload.category.value}",
            )

        model = RECORD_TYPES[category]
        records: list[ProviderRecord] = []
        for index, row in enumerate(self._iter_rows(category, payload)):
            if not isinstance(row, dict):
                raise ParseError(category, index, None, f"expected an object, got {type(row).__name__}")
            if None in row:
                # DictReader parks surplus cells under the None key
                raise ParseError(category, index, None, "row has more cells than the header")
            try:
                records.append(model.model_validate(row))
            except ValidationError as exc:
                field, reason = _field_from_error(exc)
                raise ParseError(category, index, field, reason) from exc

        if category == Category.TEAMS:
            records = self._collapse_teams(records)

        logger.info("category_parsed", category=category.value, records=len(records))
        return records

    def _iter_rows(self, category: Category, payload: RawPayload) -> Iterator[Any]:
        for page in payload.pages:
            try:
                text = page.body.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise ParseError(category, None, None, f"{page.url} is not valid UTF-8: {exc}") from exc

            if _is_json(page):
                yield from self._json_rows(category, page, text)
            else:
                yield from self._csv_rows(category, page, text)

    def _json_rows(self, category: Category, page: RawPage, text: str) -> list[Any]:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(category, None, None, f"{page.url} is not valid JSON: {exc}") from exc

        if isinstance(document, list):
            return document
        if isinstance(document, dict):
            for key in _JSON_ROW_KEYS:
                if isinstance(document.get(key), list):
                    return document[key]
        raise ParseError(category, None, None, f"{page.url} does not contain a list of rows")

    def _csv_rows(self, category: Category, page: RawPage, text: str) -> Iterator[dict[str, Any]]:
        reader = csv.DictReader(io.StringIO(text, newline=""))
        if not reader.fieldnames:
            raise ParseError(category, None, None, f"{page.url} has no header row")
        try:
            yield from reader
        except csv.Error as exc:
            raise ParseError(category, None, None, f"{page.url} is not valid CSV: {exc}") from exc

    def _collapse_teams(self, records: list[ProviderRecord]) -> list[ProviderRecord]:
        """Team files repeat each team once per game; the last row per id wins.

        Pages arrive in season order, so the newest season's name and
        abbreviation replace older ones. Each team keeps its first position.
        """
        seen: dict[str, ProviderRecord] = {}
        for record in records:
            seen[record.external_id] = record
        return list(seen.values())
