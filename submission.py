"""
submission.py

Proof submission transport: POSTs a serialized rotation proof to the server.
Only success / failure of the delivery is reported back.
"""

import logging
from typing import Any, Dict, Optional

import requests

from errors import SubmissionFailed

logger = logging.getLogger(__name__)


class HttpSubmissionTransport:
    def __init__(self, endpoint: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "HttpSubmissionTransport":
        section = cfg["submission"]
        return cls(section["endpoint"], timeout=section["timeout"])

    def submit(self, payload: Dict[str, Any]) -> None:
        """
        :param payload: SessionRotationProof.to_dict() output
        :raises SubmissionFailed: on transport errors or non-2xx responses
        """
        try:
            resp = self.session.post(self.endpoint, json={"proof": payload}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise SubmissionFailed(f"proof submission failed: {exc}") from exc
        logger.info("submitted rotation proof to %s (status %s)", self.endpoint, resp.status_code)
