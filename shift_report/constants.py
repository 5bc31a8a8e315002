"""
Constants and field definitions for the shift report.

Defines the field reference names, default column layout and the
presentation labels the report recognises.
"""

from typing import List, Tuple


# ============================================================================
# Field Reference Names
# ============================================================================

class FieldNames:
    """Azure DevOps field reference names."""

    ID = "System.Id"
    TITLE = "System.Title"
    STATE = "System.State"
    WORK_ITEM_TYPE = "System.WorkItemType"
    ASSIGNED_TO = "System.AssignedTo"
    TEAM_PROJECT = "System.TeamProject"
    AREA_PATH = "System.AreaPath"
    CREATED_DATE = "System.CreatedDate"
    CHANGED_DATE = "System.ChangedDate"
    PRIORITY = "Microsoft.VSTS.Common.Priority"
    SEVERITY = "Microsoft.VSTS.Common.Severity"
    DUE_DATE = "Microsoft.VSTS.Scheduling.DueDate"
    TARGET_DATE = "Microsoft.VSTS.Scheduling.TargetDate"


# ============================================================================
# Default Column Layout
# ============================================================================

# (display name, source field); the first entry is always the identifier
DEFAULT_COLUMNS: List[Tuple[str, str]] = [
    ("ID", FieldNames.ID),
    ("Title", FieldNames.TITLE),
    ("State", FieldNames.STATE),
    ("Priority", FieldNames.PRIORITY),
    ("Assigned To", FieldNames.ASSIGNED_TO),
    ("Severity", FieldNames.SEVERITY),
    ("Due Date", FieldNames.DUE_DATE),
    ("Changed Date", FieldNames.CHANGED_DATE),
]

DEFAULT_DATE_FIELD = FieldNames.DUE_DATE


# ============================================================================
# Projection
# ============================================================================

# Columns whose display name ends with this suffix are rendered as dates
DATE_COLUMN_SUFFIX = "Date"

# Display name of the column rendered as a link to the work item
TITLE_COLUMN = "Title"

# MM/dd/yyyy HH:mm, always UTC
DATE_DISPLAY_FORMAT = "%m/%d/%Y %H:%M"

INVALID_DATE_PLACEHOLDER = "(invalid date)"

DEFAULT_LINK_TEMPLATE = "{server}/{project}/_workitems/edit/{id}"


# ============================================================================
# Presentation
# ============================================================================

class CellClasses:
    """CSS classes assigned to classified cells and rows."""

    ALERT_RED = "alert-red"
    ALERT_YELLOW = "alert-yellow"
    ROW_ODD = "odd"
    ROW_EVEN = "even"


PRIORITY_COLUMN = "Priority"

# Priority labels that get an alert class
PRIORITY_ALERTS = {
    "P0 - Emergency": CellClasses.ALERT_RED,
    "P1 - Warning": CellClasses.ALERT_YELLOW,
}

DEFAULT_REPORT_TITLE = "Shift Report"
DEFAULT_SUBJECT_TEMPLATE = "{shift} shift report - {date}"
DEFAULT_GREETING = "<p>Hello team,</p><p>Here are the work items for the {shift} shift.</p>"
DEFAULT_CLOSING = "<p>Thanks,<br>Shift Automation</p>"
DEFAULT_OUTBOX = "outbox"

DEFAULT_CREDENTIAL_TARGET = "AZURE_DEVOPS_PAT"


def format_wiql_fields(fields: List[str]) -> str:
    """Format field reference names for a WIQL SELECT clause."""
    return ", ".join(f"[{f}]" for f in fields)
