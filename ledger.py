"""
ledger.py

Client for the session ledger: looks up the session key currently registered
for a (gameId, fingerprint) pair over GraphQL.
"""

import logging
from typing import Any, Dict, Optional

import requests

from errors import LedgerUnavailable
from relation import UINT64_LIMIT

logger = logging.getLogger(__name__)

NO_SESSION = 0

SESSION_QUERY = """
query GetCurrentSession {
  runtime {
    DRM {
      sessions(
        key: {gameId: {value: "%(game_id)d"}, identifierHash: "%(fingerprint)s"}
      ) {
        value
      }
    }
  }
}"""


def build_session_query(game_id: int, fingerprint: str) -> str:
    if not fingerprint.isdigit():
        raise ValueError("fingerprint must be a decimal string")
    return SESSION_QUERY % {"game_id": int(game_id), "fingerprint": fingerprint}


def parse_session_value(body: Any, no_session: int = NO_SESSION) -> int:
    """
    Extract data.runtime.DRM.sessions.value; a missing record means no prior session.

    :raises LedgerUnavailable: if the body is not a usable GraphQL response
    """
    if not isinstance(body, dict):
        raise LedgerUnavailable("ledger response is not a JSON object")
    data = body.get("data")
    if data is None:
        errors = body.get("errors")
        raise LedgerUnavailable(f"ledger query failed: {errors!r}" if errors else "ledger response has no data")
    try:
        sessions = data["runtime"]["DRM"]["sessions"]
    except (KeyError, TypeError) as exc:
        raise LedgerUnavailable(f"unexpected ledger response shape: missing {exc}") from exc
    if sessions is None:
        return no_session
    if not isinstance(sessions, dict):
        raise LedgerUnavailable("unexpected ledger response shape: sessions is not an object")
    if sessions.get("value") is None:
        return no_session
    try:
        value = int(str(sessions["value"]))
    except ValueError as exc:
        raise LedgerUnavailable("ledger session value is not an integer") from exc
    if value < 0:
        raise LedgerUnavailable("ledger session value is negative")
    if value >= UINT64_LIMIT:
        raise LedgerUnavailable("ledger session value exceeds 64 bits")
    return value


class GraphQLLedger:
    """
    Typical usage:
        ledger = GraphQLLedger("http://localhost:8080/graphql")
        current = ledger.current_session_key(1, fingerprint_decimal)
    """

    def __init__(self, endpoint: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None, no_session: int = NO_SESSION):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()
        self.no_session = no_session

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "GraphQLLedger":
        section = cfg["ledger"]
        return cls(section["endpoint"], timeout=section["timeout"], no_session=cfg["no_session_key"])

    def current_session_key(self, game_id: int, fingerprint: str) -> int:
        """
        :raises LedgerUnavailable: on transport, HTTP or response-shape errors
        """
        query = build_session_query(game_id, fingerprint)
        try:
            resp = self.session.post(self.endpoint, json={"query": query}, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.RequestException as exc:
            raise LedgerUnavailable(f"ledger request failed: {exc}") from exc
        except ValueError as exc:
            raise LedgerUnavailable("ledger returned a non-JSON body") from exc
        value = parse_session_value(body, self.no_session)
        logger.debug("ledger lookup game=%s -> %s", game_id, value)
        return value
