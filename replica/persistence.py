"""HTTP persistence boundary to the bookmark server."""

from typing import Any, Dict, Optional, Tuple

import httpx

from common.logging_config import get_logger
from common.types import CandidateFields, Record
from replica.exceptions import TransientNetworkFailure
from replica.session import ReplicaSession

logger = get_logger(__name__)


class PersistenceClient:
    """
    Owner-scoped insert/delete/query against the source of truth.

    Every call asserts its owner_id against the session before touching
    the network.
    """

    def __init__(self, session: ReplicaSession, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            session: Session context (owner, key, server URL)
            client: Optional AsyncClient; tests inject one with a MockTransport
        """
        self.session = session
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=session.server_url,
            timeout=session.timeout,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(
                method,
                path,
                headers=self.session.auth_headers(),
                **kwargs
            )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransientNetworkFailure(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {detail}")
            raise TransientNetworkFailure(
                f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        return response

    async def insert(self, owner_id: str, fields: CandidateFields, record: Optional[Record] = None) -> Record:
        """
        Persist a new bookmark.

        Args:
            owner_id: Must be the session owner
            fields: Title, URL and favicon
            record: Optimistic local copy whose id and created_at the server keeps

        Returns:
            The authoritative record

        Raises:
            OwnerMismatchError: If owner_id is not the session owner
            TransientNetworkFailure: If the call fails
        """
        self.session.check_owner(owner_id)

        body: Dict[str, Any] = {
            "owner_id": owner_id,
            "title": fields.title,
            "url": fields.url,
            "favicon": fields.favicon,
        }
        if record is not None:
            body["id"] = record.id
            body["created_at"] = record.created_at.isoformat()

        response = await self._request("POST", "/bookmarks", json=body)
        return _parse_record(_json_body(response))

    async def delete(self, owner_id: str, record_id: str) -> bool:
        """
        Delete a bookmark. Deleting an absent id is not an error.

        Returns:
            True if the server removed a row

        Raises:
            OwnerMismatchError: If owner_id is not the session owner
            TransientNetworkFailure: If the call fails
        """
        self.session.check_owner(owner_id)

        response = await self._request(
            "DELETE",
            f"/bookmarks/{record_id}",
            params={"owner_id": owner_id},
        )
        return bool(_json_body(response).get("deleted"))

    async def query(self, owner_id: str) -> Tuple[Record, ...]:
        """
        Fetch the owner's full collection, newest first.

        Raises:
            OwnerMismatchError: If owner_id is not the session owner
            TransientNetworkFailure: If the call fails
        """
        self.session.check_owner(owner_id)

        response = await self._request("GET", "/bookmarks", params={"owner_id": owner_id})
        return tuple(_parse_record(item) for item in _json_body(response).get("bookmarks", []))


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise TransientNetworkFailure(
            f"Malformed response body (HTTP {response.status_code}): {e}",
            status_code=response.status_code,
        ) from e
    if not isinstance(data, dict):
        raise TransientNetworkFailure(
            f"Unexpected response body (HTTP {response.status_code})",
            status_code=response.status_code,
        )
    return data


def _parse_record(data: Dict[str, Any]) -> Record:
    try:
        return Record.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise TransientNetworkFailure(f"Malformed bookmark in response: {e}") from e


def _error_detail(response: httpx.Response) -> str:
    try:
        return response.json().get("detail", response.text)
    except (ValueError, AttributeError):
        return response.text
