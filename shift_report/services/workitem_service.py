"""
Work Item query service for Azure DevOps
Runs a WIQL query, then fetches details for the matched ids in one batch
"""
import logging
from typing import List, Optional, Sequence

from azure.devops.v7_1.work_item_tracking.models import Wiql
from azure.devops.v7_1.work.models import TeamContext

from ..decorators import azure_devops_operation
from ..errors import AzureDevOpsError
from ..models import FetchResult, RawItemRecord
from ..validation import validate_wiql

logger = logging.getLogger(__name__)


class WorkItemQueryService:
    """Service for the two-step work item fetch"""

    def __init__(self, auth, project: str, detail_fields: Optional[Sequence[str]] = None):
        """
        Initialize work item query service

        Args:
            auth: AzureDevOpsAuth instance
            project: Azure DevOps project name
            detail_fields: Field reference names to request in the batch
                fetch; None requests every field
        """
        self.auth = auth
        self.project = project
        self.detail_fields = list(detail_fields) if detail_fields else None
        self._wit_client = None

    @property
    def wit_client(self):
        """Lazy load work item tracking client"""
        if not self._wit_client:
            self._wit_client = self.auth.get_client('work_item_tracking')
        return self._wit_client

    @azure_devops_operation()
    async def run_query(self, query_text: str) -> List[int]:
        """
        Submit a WIQL query and return the matched ids in API order.

        Raises:
            AzureDevOpsError: If the request fails
        """
        query_result = self.wit_client.query_by_wiql(
            Wiql(query=query_text),
            team_context=TeamContext(project=self.project)
        )
        return [item.id for item in (query_result.work_items or [])]

    @azure_devops_operation()
    async def fetch_details(self, ids: Sequence[int]) -> List[RawItemRecord]:
        """
        Fetch full records for ids in a single batch call.

        Records keep whatever order the API yields. Items deleted since
        the query ran come back as None and are skipped.
        """
        work_items = self.wit_client.get_work_items(
            ids=list(ids),
            project=self.project,
            fields=self.detail_fields,
            error_policy="omit"
        )
        return [RawItemRecord.from_api(wi) for wi in (work_items or []) if wi is not None]

    async def query_work_items(self, query_text: str) -> List[RawItemRecord]:
        """
        Run the query and fetch details for every match.

        Returns:
            Raw records; empty without a second call when nothing matched

        Raises:
            ValidationError: If the WIQL text is malformed
            AzureDevOpsError: If either call fails
        """
        validate_wiql(query_text)

        ids = await self.run_query(query_text)
        logger.info(f"Query matched {len(ids)} work item(s) in project {self.project}")

        if not ids:
            return []

        return await self.fetch_details(ids)

    async def fetch(self, query_text: str) -> FetchResult:
        """
        Like query_work_items, but reports transport failures as a value.

        Returns:
            FetchResult with records, or with error set and no records
        """
        try:
            records = await self.query_work_items(query_text)
        except AzureDevOpsError as e:
            logger.error(f"Work item query failed: {e}")
            return FetchResult(records=[], error=e)

        return FetchResult(records=records)
