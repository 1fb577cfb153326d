"""Explicit session context carried by every replica component."""

from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from common.constants import REALTIME_PATH
from common.logging_config import get_logger
from replica.exceptions import OwnerMismatchError, TransientNetworkFailure

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReplicaSession:
    """
    Owner identity plus the handles needed to reach the server.

    Passed explicitly to the persistence client, the channel transport and
    the replica; there is no process-wide session.
    """
    owner_id: str
    session_key: str = field(repr=False)
    server_url: str
    timeout: float = 30.0

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.session_key}"}

    @property
    def realtime_url(self) -> str:
        base = self.server_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base + REALTIME_PATH

    def check_owner(self, owner_id: str) -> None:
        """
        Raises:
            OwnerMismatchError: If `owner_id` is not this session's owner
        """
        if owner_id != self.owner_id:
            raise OwnerMismatchError(
                f"Operation scoped to {owner_id!r} on a session for {self.owner_id!r}"
            )


async def establish_session(
    server_url: str,
    owner_id: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> ReplicaSession:
    """
    Open a server session for `owner_id`.

    Args:
        server_url: Base URL, e.g. "http://localhost:8000"
        owner_id: Owner identity established upstream
        client: Optional AsyncClient (tests inject a MockTransport)
        timeout: Request timeout in seconds

    Raises:
        TransientNetworkFailure: If the server is unreachable or refuses
    """
    own_client = client is None
    if client is None:
        client = httpx.AsyncClient(base_url=server_url, timeout=timeout)

    try:
        response = await client.post("/auth/session", json={"owner_id": owner_id})
    except httpx.HTTPError as e:
        logger.warning(f"Session request failed: {e}")
        raise TransientNetworkFailure(f"Cannot reach server: {e}") from e
    finally:
        if own_client:
            await client.aclose()

    if response.status_code != 201:
        raise TransientNetworkFailure(
            f"Session request refused (HTTP {response.status_code})",
            status_code=response.status_code,
        )

    data = response.json()
    logger.info(f"Session established for owner {data['owner_id']}")
    return ReplicaSession(
        owner_id=data["owner_id"],
        session_key=data["session_key"],
        server_url=server_url,
        timeout=timeout,
    )


async def revoke_session(session: ReplicaSession, client: Optional[httpx.AsyncClient] = None) -> bool:
    """
    Revoke a server session.

    Returns:
        True if the server still knew the session

    Raises:
        TransientNetworkFailure: If the server is unreachable or refuses
    """
    own_client = client is None
    if client is None:
        client = httpx.AsyncClient(base_url=session.server_url, timeout=session.timeout)

    try:
        response = await client.delete("/auth/session", headers=session.auth_headers())
    except httpx.HTTPError as e:
        logger.warning(f"Session revocation failed: {e}")
        raise TransientNetworkFailure(f"Cannot reach server: {e}") from e
    finally:
        if own_client:
            await client.aclose()

    if response.status_code != 200:
        raise TransientNetworkFailure(
            f"Session revocation refused (HTTP {response.status_code})",
            status_code=response.status_code,
        )

    return bool(response.json().get("revoked"))
