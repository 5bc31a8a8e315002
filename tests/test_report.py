"""
Tests for a full report run with the SDK client, credentials and mail
hand-off mocked.
"""
import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from msrest.exceptions import ClientRequestError

from shift_report.columns import ColumnSpec
from shift_report.config import ReportConfig, load_config
from shift_report.errors import ConfigurationError, CredentialError, TransportError
from shift_report.models import FailurePolicy, OutputMode
from shift_report.presentation import HtmlRenderer
from shift_report.report import ShiftReport
from shift_report.validation import ValidationError


NIGHT_AFTER_MIDNIGHT = datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc)


def _config(**overrides):
    settings = dict(
        server_url="https://dev.azure.com/org",
        project="Ops",
        columns=ColumnSpec.from_names(
            ["ID", "Title", "Pickup Date", "Priority"],
            ["System.Id", "System.Title", "Custom.PickupDate", "Custom.Priority"]
        ),
        date_field="Custom.PickupDate",
        recipient="ops@example.com",
    )
    settings.update(overrides)
    return ReportConfig(**settings)


@pytest.fixture
def wit_client():
    client = Mock()
    client.query_by_wiql.return_value = Mock(work_items=[Mock(id=42)])
    client.get_work_items.return_value = [
        Mock(id=42, fields={
            "System.Title": "Fix leak",
            "Custom.PickupDate": "2023-06-01T16:00:00Z",
            "Custom.Priority": "P0 - Emergency",
        })
    ]
    return client


@pytest.fixture
def auth(wit_client):
    auth = Mock()
    auth.initialize = AsyncMock()
    auth.close = AsyncMock()
    auth.credential_error = None
    auth.get_client.return_value = wit_client
    return auth


@pytest.fixture
def mailer():
    mailer = Mock()
    mailer.deliver.return_value = Path("outbox/shift_report_20240510_030000.eml")
    return mailer


def _report(auth, mailer, **overrides):
    return ShiftReport(
        _config(**overrides),
        auth=auth,
        mailer=mailer,
        renderer=HtmlRenderer(stylesheet="")
    )


class TestConsoleRun:
    """Test preview runs"""

    @pytest.mark.asyncio
    async def test_console_preview(self, auth, mailer):
        outcome = await _report(auth, mailer).run("morning", OutputMode.CONSOLE, now=NIGHT_AFTER_MIDNIGHT)

        assert outcome.output.mode is OutputMode.CONSOLE
        assert outcome.output.row_count == 1
        assert "Shift Report - Morning shift" in outcome.output.content
        assert "06/01/2023 16:00" in outcome.output.content
        assert "<a href" not in outcome.output.content
        assert not outcome.degraded
        mailer.deliver.assert_not_called()

    @pytest.mark.asyncio
    async def test_recipient_not_needed_for_preview(self, auth, mailer):
        outcome = await _report(auth, mailer, recipient=None).run("night", OutputMode.CONSOLE)
        assert outcome.output.row_count == 1

    @pytest.mark.asyncio
    async def test_credentials_initialized_and_released(self, auth, mailer):
        await _report(auth, mailer).run("night", OutputMode.CONSOLE)

        auth.initialize.assert_awaited_once_with(on_failure=FailurePolicy.DEGRADE)
        auth.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shift_query_submitted(self, auth, mailer, wit_client):
        await _report(auth, mailer, work_item_type="Incident").run(
            "night", OutputMode.CONSOLE, now=NIGHT_AFTER_MIDNIGHT
        )

        query = wit_client.query_by_wiql.call_args.args[0].query
        assert "[System.TeamProject] = 'Ops'" in query
        assert "[Custom.PickupDate] >= @Today - 1 AND [Custom.PickupDate] < @Today" in query
        assert "[System.WorkItemType] = 'Incident'" in query

        assert wit_client.get_work_items.call_args.kwargs["fields"] == [
            "System.Id", "System.Title", "Custom.PickupDate", "Custom.Priority"
        ]

    @pytest.mark.asyncio
    async def test_no_matches(self, auth, mailer, wit_client):
        wit_client.query_by_wiql.return_value = Mock(work_items=[])

        outcome = await _report(auth, mailer).run("morning", OutputMode.CONSOLE)

        assert outcome.output.content == "No work items found."
        assert outcome.output.row_count == 0
        wit_client.get_work_items.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_shift(self, auth, mailer):
        with pytest.raises(ValidationError):
            await _report(auth, mailer).run("evening", OutputMode.CONSOLE)
        auth.initialize.assert_not_awaited()


class TestMailRun:
    """Test HTML runs"""

    @pytest.mark.asyncio
    async def test_html_report_delivered(self, auth, mailer):
        outcome = await _report(auth, mailer).run("night", OutputMode.HTML, now=NIGHT_AFTER_MIDNIGHT)

        recipient, subject, body = mailer.deliver.call_args.args
        assert recipient == "ops@example.com"
        assert subject == "Night shift report - 05/09/2024"
        assert "work items for the night shift" in body
        assert '<a href="https://dev.azure.com/org/Ops/_workitems/edit/42">Fix leak</a>' in body
        assert '<td class="alert-red">P0 - Emergency</td>' in body

        assert outcome.delivered_to == mailer.deliver.return_value
        assert outcome.sent is False

    @pytest.mark.asyncio
    async def test_sent_over_smtp(self, auth, mailer):
        mailer.deliver.return_value = None

        outcome = await _report(auth, mailer).run("morning", OutputMode.HTML)

        assert outcome.sent is True
        assert outcome.delivered_to is None

    @pytest.mark.asyncio
    async def test_missing_recipient(self, auth, mailer):
        with pytest.raises(ConfigurationError, match="REPORT_RECIPIENT"):
            await _report(auth, mailer, recipient=None).run("morning", OutputMode.HTML)
        auth.initialize.assert_not_awaited()


class TestFailurePolicies:
    """Test degraded and aborted runs"""

    @pytest.mark.asyncio
    async def test_transport_failure_degrades(self, auth, mailer, wit_client):
        wit_client.query_by_wiql.side_effect = ClientRequestError("Connection refused")

        outcome = await _report(auth, mailer).run("morning", OutputMode.HTML)

        assert isinstance(outcome.fetch_error, TransportError)
        assert outcome.degraded
        assert outcome.output.row_count == 0
        body = mailer.deliver.call_args.args[2]
        assert "No work items found." in body

    @pytest.mark.asyncio
    async def test_transport_failure_aborts(self, auth, mailer, wit_client):
        wit_client.query_by_wiql.side_effect = ClientRequestError("Connection refused")
        report = _report(auth, mailer, on_transport_failure=FailurePolicy.ABORT)

        with pytest.raises(TransportError):
            await report.run("morning", OutputMode.HTML)

        mailer.deliver.assert_not_called()
        auth.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_credential_failure_degrades(self, auth, mailer):
        auth.credential_error = CredentialError("AZURE_DEVOPS_PAT")

        outcome = await _report(auth, mailer).run("morning", OutputMode.CONSOLE)

        assert outcome.credential_error is auth.credential_error
        assert outcome.degraded

    @pytest.mark.asyncio
    async def test_credential_policy_passed_to_auth(self, auth, mailer):
        auth.initialize.side_effect = CredentialError("AZURE_DEVOPS_PAT")
        report = _report(auth, mailer, on_credential_failure=FailurePolicy.ABORT)

        with pytest.raises(CredentialError):
            await report.run("morning", OutputMode.CONSOLE)

        auth.initialize.assert_awaited_once_with(on_failure=FailurePolicy.ABORT)
        auth.close.assert_awaited_once()


# Integration test placeholder
@pytest.mark.integration
@pytest.mark.asyncio
async def test_console_report_integration():
    """
    Runs a preview against a real organization.
    Requires AZURE_DEVOPS_ORG_URL, AZURE_DEVOPS_PROJECT and a credential
    """
    if not os.getenv('AZURE_DEVOPS_ORG_URL') or not os.getenv('AZURE_DEVOPS_PROJECT'):
        pytest.skip('Azure DevOps credentials not configured')

    report = ShiftReport(load_config())
    outcome = await report.run("morning", OutputMode.CONSOLE)

    assert outcome.output.mode is OutputMode.CONSOLE
    assert outcome.fetch_error is None
