"""
Projection of raw work item records into a flat display table.

Every record becomes one row and every column one cell, left to right,
top to bottom. Nothing is filtered, sorted or aggregated.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Sequence, Union

from markupsafe import Markup

from .columns import Column, ColumnKind, ColumnSpec
from .constants import (
    DATE_DISPLAY_FORMAT,
    DEFAULT_REPORT_TITLE,
    INVALID_DATE_PLACEHOLDER
)
from .errors import CellFormatError
from .models import NO_RESULTS, NoResults, ProjectedTable, RawItemRecord

logger = logging.getLogger(__name__)


def parse_utc_timestamp(value: Any) -> datetime:
    """
    Parse an API timestamp as UTC.

    Naive values are taken to be UTC already; aware values are converted
    to UTC. The result is never shifted to local time.

    Raises:
        ValueError: If the value is missing or not an ISO-8601 timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"not a timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(value: Any) -> str:
    """Render a timestamp as MM/dd/yyyy HH:mm in UTC."""
    return parse_utc_timestamp(value).strftime(DATE_DISPLAY_FORMAT)


def format_plain(value: Any) -> str:
    """Natural string form of a field value; identities show their display name."""
    if value is None:
        return ""
    if isinstance(value, dict) and ('displayName' in value or 'uniqueName' in value):
        return value.get('displayName') or value.get('uniqueName') or ""
    return str(value)


def format_title_link(work_item_id: Any, title: Any, link_template: str) -> Markup:
    """Anchor whose target is built from the identifier only."""
    url = link_template.format(id=work_item_id)
    return Markup('<a href="{0}">{1}</a>').format(url, format_plain(title))


class Projector:
    """
    Renders cells for a fixed column spec.

    Args:
        columns: Tagged column spec
        link_template: URL template with a single {id} placeholder
        strict: Raise CellFormatError on malformed cells instead of
            rendering a placeholder
    """

    def __init__(self, columns: ColumnSpec, link_template: str = "{id}", strict: bool = False):
        self.columns = columns
        self.link_template = link_template
        self.strict = strict

    def render_cell(self, record: RawItemRecord, column: Column) -> str:
        if column.kind is ColumnKind.IDENTIFIER:
            return str(record.id)

        value = record.fields.get(column.source_field)

        if column.kind is ColumnKind.DATE:
            try:
                return format_date(value)
            except (ValueError, TypeError) as e:
                if self.strict:
                    raise CellFormatError(record.id, column.display_name, value) from e
                logger.warning(
                    f"Work item {record.id}: unparseable {column.display_name} {value!r}"
                )
                return INVALID_DATE_PLACEHOLDER

        if column.kind is ColumnKind.LINKED_TITLE:
            return format_title_link(record.id, value, self.link_template)

        return format_plain(value)

    def render_row(self, record: RawItemRecord) -> Dict[str, str]:
        return {
            column.display_name: self.render_cell(record, column)
            for column in self.columns
        }

    def project(
        self,
        records: Sequence[RawItemRecord],
        title: str = DEFAULT_REPORT_TITLE
    ):
        if not records:
            logger.info("No work items to project")
            return NO_RESULTS

        rows = [self.render_row(record) for record in records]
        logger.debug(f"Projected {len(rows)} row(s) x {len(self.columns)} column(s)")
        return ProjectedTable(title=title, columns=self.columns.display_names, rows=rows)


def project(
    records: Sequence[RawItemRecord],
    columns: ColumnSpec,
    title_as_link: bool = False,
    link_template: str = "{id}",
    title: str = DEFAULT_REPORT_TITLE,
    strict: bool = False
) -> Union[ProjectedTable, NoResults]:
    """
    Map raw work item records into a table.

    Args:
        records: Records in the order the API returned them
        columns: Column spec; its first column is the identifier
        title_as_link: Render the "Title" column as a link to the work item
        link_template: URL template with a single {id} placeholder
        title: Table title
        strict: Abort on malformed cells instead of rendering a placeholder

    Returns:
        ProjectedTable with one row per record, or NO_RESULTS when
        records is empty
    """
    spec = columns.with_title_links(title_as_link)
    return Projector(spec, link_template=link_template, strict=strict).project(records, title=title)
