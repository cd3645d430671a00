"""
Tests for the ledger and submission HTTP clients.
"""

from unittest.mock import Mock

import pytest
import requests

from config import DEFAULT_CONFIG
from errors import LedgerUnavailable, SubmissionFailed
from ledger import GraphQLLedger, build_session_query, parse_session_value
from submission import HttpSubmissionTransport

FP = "1234567890"


def _response(body=None, status=200, json_error=False):
    resp = Mock()
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


def _session_body(value):
    return {"data": {"runtime": {"DRM": {"sessions": None if value is None else {"value": value}}}}}


class TestQuery:
    """GraphQL query construction"""

    def test_query_embeds_keys(self):
        q = build_session_query(1, FP)
        assert 'gameId: {value: "1"}' in q
        assert f'identifierHash: "{FP}"' in q

    def test_non_decimal_fingerprint_rejected(self):
        with pytest.raises(ValueError):
            build_session_query(1, '1" } injected')


class TestParseSessionValue:
    """Response parsing"""

    def test_value(self):
        assert parse_session_value(_session_body("17")) == 17
        assert parse_session_value(_session_body(17)) == 17

    def test_missing_record_is_no_session(self):
        assert parse_session_value(_session_body(None)) == 0
        assert parse_session_value({"data": {"runtime": {"DRM": {"sessions": {"value": None}}}}}) == 0

    def test_custom_sentinel(self):
        assert parse_session_value(_session_body(None), no_session=-1) == -1

    @pytest.mark.parametrize("body", [
        [],
        {"errors": [{"message": "boom"}]},
        {"data": {"runtime": {}}},
        {"data": {"runtime": {"DRM": {"sessions": "17"}}}},
        _session_body("abc"),
        _session_body("-3"),
        _session_body(str(1 << 64)),
    ])
    def test_unusable_bodies(self, body):
        with pytest.raises(LedgerUnavailable):
            parse_session_value(body)


class TestGraphQLLedger:
    """Ledger lookups over a stubbed requests session"""

    def test_lookup(self):
        session = Mock()
        session.post.return_value = _response(_session_body("99"))
        ledger = GraphQLLedger("http://ledger/graphql", timeout=3, session=session)
        assert ledger.current_session_key(5, FP) == 99
        args, kwargs = session.post.call_args
        assert args[0] == "http://ledger/graphql"
        assert kwargs["timeout"] == 3
        assert FP in kwargs["json"]["query"]

    def test_connection_error(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(LedgerUnavailable):
            GraphQLLedger("http://ledger", session=session).current_session_key(1, FP)

    def test_http_error(self):
        session = Mock()
        session.post.return_value = _response(status=503)
        with pytest.raises(LedgerUnavailable):
            GraphQLLedger("http://ledger", session=session).current_session_key(1, FP)

    def test_non_json_body(self):
        session = Mock()
        session.post.return_value = _response(json_error=True)
        with pytest.raises(LedgerUnavailable):
            GraphQLLedger("http://ledger", session=session).current_session_key(1, FP)

    def test_from_config(self):
        ledger = GraphQLLedger.from_config(DEFAULT_CONFIG)
        assert ledger.endpoint == DEFAULT_CONFIG["ledger"]["endpoint"]
        assert ledger.no_session == DEFAULT_CONFIG["no_session_key"]


class TestSubmission:
    """Proof submission transport"""

    def test_submit_posts_payload(self):
        session = Mock()
        session.post.return_value = _response({})
        transport = HttpSubmissionTransport("http://server/submit", session=session)
        transport.submit({"proof": "abc"})
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {"proof": {"proof": "abc"}}

    def test_submit_failure(self):
        session = Mock()
        session.post.return_value = _response(status=500)
        with pytest.raises(SubmissionFailed):
            HttpSubmissionTransport("http://server/submit", session=session).submit({})

    def test_from_config(self):
        transport = HttpSubmissionTransport.from_config(DEFAULT_CONFIG)
        assert transport.endpoint == DEFAULT_CONFIG["submission"]["endpoint"]
