"""
Presentation of projected tables as console text or styled HTML.

The adapter never changes cell values. For HTML it only classifies cells and
rows into CSS classes and hands the classified table to a Jinja2 template.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .constants import CellClasses, PRIORITY_ALERTS, PRIORITY_COLUMN
from .models import (
    NO_RESULTS,
    NoResults,
    OutputMode,
    ProjectedTable,
    RenderedOutput
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_STYLESHEET = TEMPLATE_DIR / "report.css"


# ============================================================================
# Classification rules
# ============================================================================

@dataclass(frozen=True)
class CellRule:
    """Assigns a CSS class to cells of one column"""
    column: str
    classify: Callable[[str], Optional[str]]


def classify_priority(value: str) -> Optional[str]:
    """Alert class for recognised priority labels, None otherwise."""
    return PRIORITY_ALERTS.get(value)


DEFAULT_RULES: List[CellRule] = [
    CellRule(column=PRIORITY_COLUMN, classify=classify_priority),
]


def classify_cell(column: str, value: str, rules: Sequence[CellRule] = DEFAULT_RULES) -> Optional[str]:
    """Return the CSS class of the first rule for this column that matches."""
    for rule in rules:
        if rule.column == column:
            css_class = rule.classify(value)
            if css_class:
                return css_class
    return None


def row_class(index: int) -> str:
    """Stripe class by zero-based row position."""
    return CellClasses.ROW_ODD if index % 2 == 0 else CellClasses.ROW_EVEN


@dataclass
class ClassifiedCell:
    value: str
    css_class: Optional[str] = None


@dataclass
class ClassifiedRow:
    css_class: str
    cells: List[ClassifiedCell] = field(default_factory=list)


@dataclass
class ClassifiedTable:
    title: str
    columns: List[str]
    rows: List[ClassifiedRow]


def classify_table(table: ProjectedTable, rules: Sequence[CellRule] = DEFAULT_RULES) -> ClassifiedTable:
    rows = []
    for index, row in enumerate(table.rows):
        cells = [
            ClassifiedCell(value=row[column], css_class=classify_cell(column, row[column], rules))
            for column in table.columns
        ]
        rows.append(ClassifiedRow(css_class=row_class(index), cells=cells))
    return ClassifiedTable(title=table.title, columns=list(table.columns), rows=rows)


# ============================================================================
# Renderers
# ============================================================================

def render_console(table: Union[ProjectedTable, NoResults]) -> str:
    """Fixed-width text table."""
    if table is NO_RESULTS:
        return NO_RESULTS.text

    widths = {
        column: max([len(column)] + [len(str(row[column])) for row in table.rows])
        for column in table.columns
    }

    def line(values):
        return "  ".join(str(v).ljust(widths[c]) for c, v in zip(table.columns, values)).rstrip()

    lines = [
        table.title,
        "",
        line(table.columns),
        line("-" * widths[c] for c in table.columns),
    ]
    for row in table.rows:
        lines.append(line(row[c] for c in table.columns))
    return "\n".join(lines)


class HtmlRenderer:
    """
    Jinja2 renderer for the report table and the e-mail document.

    Args:
        stylesheet: CSS text; defaults to the bundled theme
        rules: Cell classification rules
        template_dir: Directory holding report_table.html and report_email.html
    """

    def __init__(
        self,
        stylesheet: Optional[str] = None,
        rules: Sequence[CellRule] = DEFAULT_RULES,
        template_dir: Path = TEMPLATE_DIR
    ):
        self.stylesheet = stylesheet if stylesheet is not None else load_stylesheet()
        self.rules = list(rules)
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_table(self, table: Union[ProjectedTable, NoResults]) -> str:
        """Render the table as an HTML fragment including its style block."""
        classified = None if table is NO_RESULTS else classify_table(table, self.rules)
        template = self.env.get_template("report_table.html")
        return template.render(
            table=classified,
            stylesheet=Markup(self.stylesheet),
            no_results_text=NO_RESULTS.text,
        )

    def wrap_body(self, fragment: str, greeting: str = "", closing: str = "", title: str = "") -> str:
        """
        Wrap a rendered fragment into a full HTML document.

        Greeting and closing are trusted HTML supplied by the caller.
        """
        template = self.env.get_template("report_email.html")
        return template.render(
            title=title,
            greeting=Markup(greeting),
            fragment=Markup(fragment),
            closing=Markup(closing),
        )


def load_stylesheet(path: Optional[Union[str, Path]] = None) -> str:
    """Read a stylesheet, falling back to the bundled theme."""
    stylesheet_path = Path(path) if path else DEFAULT_STYLESHEET
    return stylesheet_path.read_text(encoding="utf-8")


def render(
    table: Union[ProjectedTable, NoResults],
    mode: OutputMode,
    renderer: Optional[HtmlRenderer] = None
) -> RenderedOutput:
    """
    Render a projected table for the chosen output mode.

    Args:
        table: Projected table or NO_RESULTS
        mode: OutputMode.CONSOLE or OutputMode.HTML
        renderer: HTML renderer to use; a default one is built when omitted

    Returns:
        RenderedOutput with the text or HTML fragment
    """
    mode = OutputMode(mode)
    row_count = 0 if table is NO_RESULTS else len(table.rows)

    if mode is OutputMode.CONSOLE:
        content = render_console(table)
    else:
        content = (renderer or HtmlRenderer()).render_table(table)

    logger.debug(f"Rendered {row_count} row(s) as {mode.value}")
    return RenderedOutput(mode=mode, content=content, row_count=row_count)
