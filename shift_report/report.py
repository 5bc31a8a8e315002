"""
One report run: shift -> query -> projection -> presentation -> sink.

Every step runs in order and waits for the previous one; nothing is kept
between runs.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .auth import AzureDevOpsAuth
from .config import ReportConfig
from .errors import ConfigurationError
from .mailer import Mailer
from .models import FailurePolicy, OutputMode, RunOutcome
from .presentation import HtmlRenderer, load_stylesheet, render
from .projection import project
from .services.workitem_service import WorkItemQueryService
from .shifts import ShiftWindow, build_shift_query, get_shift

logger = logging.getLogger(__name__)


class ShiftReport:
    """
    Runs the shift report for a configuration.

    Collaborators can be injected; defaults are built from the config.

    Example:
        report = ShiftReport(load_config())
        outcome = await report.run("night", OutputMode.CONSOLE)
        print(outcome.output.content)
    """

    def __init__(
        self,
        config: ReportConfig,
        auth: Optional[AzureDevOpsAuth] = None,
        mailer: Optional[Mailer] = None,
        renderer: Optional[HtmlRenderer] = None
    ):
        self.config = config
        self.auth = auth or AzureDevOpsAuth(config.server_url, config.credential_target)
        self.mailer = mailer or Mailer(config.smtp, outbox=config.outbox)
        self._renderer = renderer

    @property
    def renderer(self) -> HtmlRenderer:
        if self._renderer is None:
            self._renderer = HtmlRenderer(stylesheet=load_stylesheet(self.config.stylesheet_path))
        return self._renderer

    def table_title(self, shift: ShiftWindow) -> str:
        return f"{self.config.title} - {shift.name.title()} shift"

    def subject(self, shift: ShiftWindow, now: datetime) -> str:
        report_day = now + timedelta(days=shift.day_offset(now))
        return self.config.subject_template.format(
            shift=shift.name.title(),
            date=report_day.strftime("%m/%d/%Y")
        )

    async def run(
        self,
        shift_name: str,
        mode: OutputMode = OutputMode.HTML,
        now: Optional[datetime] = None
    ) -> RunOutcome:
        """
        Execute one report run.

        Args:
            shift_name: One of the fixed shift names
            mode: CONSOLE prints a preview; HTML composes the e-mail
            now: Reference time for the shift window (UTC); defaults to now

        Returns:
            RunOutcome describing what was rendered and delivered

        Raises:
            ValidationError: If the shift name is unknown
            ConfigurationError: If mail mode has no recipient
            CredentialError: On credential failure under the ABORT policy
            AzureDevOpsError: On transport failure under the ABORT policy
        """
        mode = OutputMode(mode)
        shift = get_shift(shift_name)
        now = now or datetime.now(timezone.utc)

        if mode is OutputMode.HTML and not self.config.recipient:
            raise ConfigurationError(
                "Missing required environment variable: REPORT_RECIPIENT\n"
                "Set a recipient or use --preview for console output"
            )

        logger.info(f"Running {shift.name} shift report for project {self.config.project}")

        try:
            await self.auth.initialize(on_failure=self.config.on_credential_failure)

            service = WorkItemQueryService(
                self.auth,
                self.config.project,
                detail_fields=self.config.columns.detail_fields()
            )
            query = build_shift_query(
                shift,
                project=self.config.project,
                fields=self.config.columns.detail_fields(),
                date_field=self.config.date_field,
                work_item_type=self.config.work_item_type,
                now=now
            )
            logger.debug(f"WIQL:\n{query}")

            result = await service.fetch(query)
        finally:
            await self.auth.close()

        if not result.ok and self.config.on_transport_failure is FailurePolicy.ABORT:
            raise result.error

        table = project(
            result.records,
            self.config.columns,
            title_as_link=mode is OutputMode.HTML,
            link_template=self.config.item_link_template,
            title=self.table_title(shift),
            strict=self.config.strict_cells
        )

        renderer = self.renderer if mode is OutputMode.HTML else None
        output = render(table, mode, renderer=renderer)

        outcome = RunOutcome(
            shift=shift.name,
            output=output,
            fetch_error=result.error,
            credential_error=self.auth.credential_error
        )

        if mode is OutputMode.HTML:
            body = self.renderer.wrap_body(
                output.content,
                greeting=self.config.greeting.replace("{shift}", shift.name),
                closing=self.config.closing,
                title=self.table_title(shift)
            )
            draft = self.mailer.deliver(self.config.recipient, self.subject(shift, now), body)
            outcome.delivered_to = draft
            outcome.sent = draft is None

        if outcome.degraded:
            logger.warning("Report completed without usable data from Azure DevOps")
        return outcome
