"""
Report configuration loaded from the environment.

Values come from process environment variables, optionally seeded from a
.env file, and are gathered once into an immutable ReportConfig that is
passed explicitly to every component.
"""
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
from urllib.parse import quote

from dotenv import load_dotenv

from .columns import ColumnSpec
from .constants import (
    DEFAULT_CLOSING,
    DEFAULT_COLUMNS,
    DEFAULT_CREDENTIAL_TARGET,
    DEFAULT_DATE_FIELD,
    DEFAULT_GREETING,
    DEFAULT_LINK_TEMPLATE,
    DEFAULT_OUTBOX,
    DEFAULT_REPORT_TITLE,
    DEFAULT_SUBJECT_TEMPLATE
)
from .errors import ConfigurationError
from .models import FailurePolicy
from .validation import ValidationError, validate_field_name


@dataclass(frozen=True)
class SmtpSettings:
    """SMTP transport; host None means drafts are written to the outbox"""
    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    use_tls: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.host)


@dataclass(frozen=True)
class ReportConfig:
    """Everything one report run needs"""
    server_url: str
    project: str
    columns: ColumnSpec
    link_template: str = DEFAULT_LINK_TEMPLATE
    credential_target: str = DEFAULT_CREDENTIAL_TARGET
    date_field: str = DEFAULT_DATE_FIELD
    work_item_type: Optional[str] = None
    title: str = DEFAULT_REPORT_TITLE
    recipient: Optional[str] = None
    subject_template: str = DEFAULT_SUBJECT_TEMPLATE
    greeting: str = DEFAULT_GREETING
    closing: str = DEFAULT_CLOSING
    stylesheet_path: Optional[str] = None
    outbox: str = DEFAULT_OUTBOX
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    on_credential_failure: FailurePolicy = FailurePolicy.DEGRADE
    on_transport_failure: FailurePolicy = FailurePolicy.DEGRADE
    strict_cells: bool = False

    @property
    def item_link_template(self) -> str:
        """Link template with server and project filled in; only {id} remains."""
        return (
            self.link_template
            .replace("{server}", self.server_url.rstrip("/"))
            .replace("{project}", quote(self.project))
        )


def _get(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_required(env: Mapping[str, str], name: str) -> str:
    """
    Get a required setting or raise a clear error.

    Raises:
        ConfigurationError: If the setting is not set
    """
    value = _get(env, name)
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable: {name}\n"
            f"Please set {name} in your environment or .env file"
        )
    return value


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_policy(env: Mapping[str, str], name: str) -> FailurePolicy:
    raw = _get(env, name, FailurePolicy.DEGRADE.value).lower()
    try:
        return FailurePolicy(raw)
    except ValueError:
        allowed = ", ".join(p.value for p in FailurePolicy)
        raise ConfigurationError(f"{name} must be one of: {allowed} (got '{raw}')")


def parse_list(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def build_column_spec(env: Mapping[str, str]) -> ColumnSpec:
    """Column spec from REPORT_COLUMNS / REPORT_FIELDS, or the default layout."""
    names = parse_list(_get(env, "REPORT_COLUMNS"))
    fields = parse_list(_get(env, "REPORT_FIELDS"))

    if not names and not fields:
        return ColumnSpec.from_pairs(DEFAULT_COLUMNS)

    try:
        return ColumnSpec.from_names(names, fields)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid column configuration: {e}") from e


def load_config(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> ReportConfig:
    """
    Build a ReportConfig from environment variables.

    Args:
        env: Mapping to read instead of os.environ (no .env loading then)
        dotenv_path: Explicit .env file; the default search is used when None

    Raises:
        ConfigurationError: If a required setting is missing or malformed
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    date_field = _get(env, "REPORT_DATE_FIELD", DEFAULT_DATE_FIELD)
    try:
        date_field = validate_field_name(date_field)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid REPORT_DATE_FIELD: {e}") from e

    link_template = _get(env, "REPORT_LINK_TEMPLATE", DEFAULT_LINK_TEMPLATE)
    if "{id}" not in link_template:
        raise ConfigurationError("REPORT_LINK_TEMPLATE must contain an {id} placeholder")

    subject_template = _get(env, "REPORT_SUBJECT", DEFAULT_SUBJECT_TEMPLATE)
    try:
        subject_template.format(shift="Morning", date="01/01/2000")
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigurationError(
            f"REPORT_SUBJECT may only use the {{shift}} and {{date}} placeholders: {e!r}"
        ) from e

    try:
        smtp_port = int(_get(env, "SMTP_PORT", "587"))
    except ValueError:
        raise ConfigurationError("SMTP_PORT must be an integer")

    smtp_host = _get(env, "SMTP_HOST")
    smtp_username = _get(env, "SMTP_USERNAME")
    smtp_sender = _get(env, "SMTP_SENDER", smtp_username)
    if smtp_host and not smtp_sender:
        raise ConfigurationError(
            "Missing required environment variable: SMTP_SENDER\n"
            "Set SMTP_SENDER (or SMTP_USERNAME) when SMTP_HOST is configured"
        )

    smtp = SmtpSettings(
        host=smtp_host,
        port=smtp_port,
        username=smtp_username,
        password=_get(env, "SMTP_PASSWORD"),
        sender=smtp_sender,
        use_tls=parse_bool(_get(env, "SMTP_USE_TLS"), default=True),
    )

    return ReportConfig(
        server_url=get_required(env, "AZURE_DEVOPS_ORG_URL").rstrip("/"),
        project=get_required(env, "AZURE_DEVOPS_PROJECT"),
        columns=build_column_spec(env),
        link_template=link_template,
        credential_target=_get(env, "REPORT_CREDENTIAL_TARGET", DEFAULT_CREDENTIAL_TARGET),
        date_field=date_field,
        work_item_type=_get(env, "REPORT_WORK_ITEM_TYPE"),
        title=_get(env, "REPORT_TITLE", DEFAULT_REPORT_TITLE),
        recipient=_get(env, "REPORT_RECIPIENT"),
        subject_template=subject_template,
        greeting=_get(env, "REPORT_GREETING", DEFAULT_GREETING),
        closing=_get(env, "REPORT_CLOSING", DEFAULT_CLOSING),
        stylesheet_path=_get(env, "REPORT_STYLESHEET"),
        outbox=_get(env, "REPORT_OUTBOX", DEFAULT_OUTBOX),
        smtp=smtp,
        on_credential_failure=parse_policy(env, "ON_CREDENTIAL_FAILURE"),
        on_transport_failure=parse_policy(env, "ON_TRANSPORT_FAILURE"),
        strict_cells=parse_bool(_get(env, "REPORT_STRICT_CELLS")),
    )
