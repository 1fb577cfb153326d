"""Reconciliation fetcher: authoritative owner-scoped snapshot reads."""

from typing import Tuple

from common.logging_config import get_logger
from common.types import Record
from replica.persistence import PersistenceClient

logger = get_logger(__name__)


class ReconciliationFetcher:
    """
    Stateless re-read of an owner's full collection.

    Scoping lives in the query itself. Records of any other owner that the
    server returns anyway are dropped rather than trusted.
    """

    def __init__(self, persistence: PersistenceClient):
        self.persistence = persistence

    async def fetch(self, owner_id: str) -> Tuple[Record, ...]:
        """
        Fetch the authoritative snapshot for `owner_id`.

        Returns:
            Records ordered newest first, unique by id

        Raises:
            OwnerMismatchError: If owner_id is not the session owner
            TransientNetworkFailure: If the query fails
        """
        records = await self.persistence.query(owner_id)

        snapshot = []
        seen = set()
        for record in records:
            if record.owner_id != owner_id:
                logger.warning(f"Dropping record {record.id} of foreign owner from fetch result")
                continue
            if record.id in seen:
                continue
            seen.add(record.id)
            snapshot.append(record)

        logger.debug(f"Fetched {len(snapshot)} record(s) for owner {owner_id}")
        return tuple(snapshot)
