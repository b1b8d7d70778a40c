"""
Test suite for the HTTP API.

Services are patched at the router modules so no Supabase or Reddit access
happens.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fastapi.testclient import TestClient
from unittest.mock import patch

import pytest

from raffle.main import app
from raffle.models.override import CommentOverride
from raffle.services.access import AccessDenied
from raffle.services.overrides import OverrideConflict
from raffle.services.parser import PARSER_VERSION
from raffle.services.reddit import InvalidRedditUrl, RedditFetchError

client = TestClient(app)

AUTH = {'Authorization': 'Bearer tok-123'}


class TestHealth:

    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()['parser_version'] == PARSER_VERSION

    def test_health(self):
        response = client.get("/health")
        assert response.json() == {"status": "healthy"}


class TestParseEndpoint:

    def test_parse(self):
        response = client.post("/parse", json={
            "body": "30 spots tabbed by Fuzzy",
            "author": "Bob",
            "comment_id": "c1",
        })
        assert response.status_code == 200
        data = response.json()
        assert data['parser_version'] == PARSER_VERSION
        assert data['comment']['random_spots'] == 30
        assert data['comment']['payer'] == 'fuzzy'
        assert data['comment']['is_tab'] is True

    def test_parse_defaults(self):
        response = client.post("/parse", json={})
        assert response.status_code == 200
        assert response.json()['comment']['spots'] == 0


class TestCreateRun:

    @patch('raffle.routers.runs.RunIngestionService')
    def test_create(self, mock_service):
        mock_service.return_value.create_run.return_value = {
            'run_id': 'run-1',
            'share_url': 'http://localhost:3000/r/run-1',
            'admin_code': 'AAAA-BBBB-CCCC',
            'title': 'Raffle',
            'total_spots_from_title': 40,
            'raffle_tool_block': None,
        }
        response = client.post("/runs", json={"url": "https://www.reddit.com/r/x/comments/p1/"})

        assert response.status_code == 200
        assert response.json()['admin_code'] == 'AAAA-BBBB-CCCC'

    @patch('raffle.routers.runs.RunIngestionService')
    def test_invalid_url(self, mock_service):
        mock_service.return_value.create_run.side_effect = InvalidRedditUrl("Invalid Reddit post URL")
        response = client.post("/runs", json={"url": "nope"})
        assert response.status_code == 400

    @patch('raffle.routers.runs.RunIngestionService')
    def test_reddit_failure(self, mock_service):
        mock_service.return_value.create_run.side_effect = RedditFetchError("Reddit fetch failed: 503")
        response = client.post("/runs", json={"url": "https://www.reddit.com/r/x/comments/p1/"})
        assert response.status_code == 502


class TestGetRun:

    @patch('raffle.routers.runs.RunIngestionService')
    @patch('raffle.routers.runs.AccessService')
    def test_run_with_effective_values(self, mock_access, mock_service):
        mock_access.return_value.verify_session.return_value = 'viewer'
        mock_service.return_value.get_run.return_value = {
            'run': {'id': 'run-1'},
            'comments': [
                {'comment_id': 'c1', 'author': 'bob', 'payer': 'bob', 'beneficiary': 'bob', 'spots': 3,
                 'comment_overrides': [{'skipped': False, 'override_spots': 5, 'override_payer': None,
                                        'override_beneficiary': None, 'version': 2}]},
                {'comment_id': 'c2', 'author': 'amy', 'payer': 'bob', 'beneficiary': 'amy', 'spots': 2,
                 'comment_overrides': []},
            ],
        }

        response = client.get("/runs/run-1", headers=AUTH)

        assert response.status_code == 200
        mock_access.return_value.verify_session.assert_called_once_with('run-1', 'tok-123')
        data = response.json()
        assert data['comments'][0]['effective']['spots'] == 5
        assert data['comments'][0]['override_version'] == 2
        assert data['comments'][1]['override_version'] == 0
        assert data['tally'] == [{'user': 'bob', 'self_claimed': 5, 'owes_for': 2}]

    @patch('raffle.routers.runs.RunIngestionService')
    @patch('raffle.routers.runs.AccessService')
    def test_token_in_query(self, mock_access, mock_service):
        mock_access.return_value.verify_session.return_value = 'viewer'
        mock_service.return_value.get_run.return_value = {'run': {'id': 'run-1'}, 'comments': []}

        response = client.get("/runs/run-1?t=query-tok")

        assert response.status_code == 200
        mock_access.return_value.verify_session.assert_called_once_with('run-1', 'query-tok')

    @patch('raffle.routers.runs.AccessService')
    def test_missing_token(self, mock_access):
        mock_access.return_value.verify_session.side_effect = AccessDenied("Missing token")
        response = client.get("/runs/run-1")
        assert response.status_code == 401

    @patch('raffle.routers.runs.RunIngestionService')
    @patch('raffle.routers.runs.AccessService')
    def test_run_not_found(self, mock_access, mock_service):
        mock_access.return_value.verify_session.return_value = 'admin'
        mock_service.return_value.get_run.return_value = None
        response = client.get("/runs/nope", headers=AUTH)
        assert response.status_code == 404


class TestCodes:

    @patch('raffle.routers.runs.AccessService')
    def test_invite(self, mock_access):
        mock_access.return_value.create_invite.return_value = 'DDDD-EEEE-FFFF'
        response = client.post("/runs/run-1/invites", json={
            "admin_code": "AAAA-BBBB-CCCC", "role": "editor",
        })
        assert response.status_code == 200
        assert response.json() == {'invite_code': 'DDDD-EEEE-FFFF', 'role': 'editor'}

    @patch('raffle.routers.runs.AccessService')
    def test_invite_bad_role(self, mock_access):
        mock_access.return_value.create_invite.side_effect = ValueError("role must be viewer or editor")
        response = client.post("/runs/run-1/invites", json={"admin_code": "x", "role": "admin"})
        assert response.status_code == 400

    @patch('raffle.routers.runs.AccessService')
    def test_invite_bad_admin_code(self, mock_access):
        mock_access.return_value.create_invite.side_effect = AccessDenied("Invalid admin code")
        response = client.post("/runs/run-1/invites", json={"admin_code": "x", "role": "viewer"})
        assert response.status_code == 401

    @patch('raffle.routers.runs.AccessService')
    def test_redeem(self, mock_access):
        mock_access.return_value.redeem.return_value = {
            'token': 't', 'role': 'editor', 'expires_at': '2030-01-01T00:00:00+00:00',
        }
        response = client.post("/runs/run-1/redeem", json={"code": "AAAA-BBBB-CCCC"})
        assert response.status_code == 200
        assert response.json()['role'] == 'editor'

    def test_redeem_blank_code(self):
        response = client.post("/runs/run-1/redeem", json={"code": "   "})
        assert response.status_code == 400


class TestOverrideEndpoint:

    URL = "/runs/run-1/comments/c1/override"

    @patch('raffle.routers.overrides.SupabaseOverrideStore')
    @patch('raffle.routers.overrides.OverrideService')
    @patch('raffle.routers.overrides.AccessService')
    def test_write(self, mock_access, mock_service, mock_store):
        mock_access.return_value.verify_session.return_value = 'editor'
        mock_service.return_value.apply.return_value = CommentOverride(
            run_id='run-1', comment_id='c1', override_spots=4, version=1,
        )

        response = client.post(self.URL, headers=AUTH, json={
            "override_spots": 4, "expected_version": 0,
        })

        assert response.status_code == 200
        assert response.json() == {'ok': True, 'version': 1}
        args = mock_service.return_value.apply.call_args[0]
        assert args[0:2] == ('run-1', 'c1')
        assert args[2].override_spots == 4
        assert args[3] == 0

    @patch('raffle.routers.overrides.SupabaseOverrideStore')
    @patch('raffle.routers.overrides.OverrideService')
    @patch('raffle.routers.overrides.AccessService')
    def test_conflict(self, mock_access, mock_service, mock_store):
        mock_access.return_value.verify_session.return_value = 'admin'
        latest = CommentOverride(run_id='run-1', comment_id='c1', override_spots=7, version=3)
        mock_service.return_value.apply.side_effect = OverrideConflict(latest)

        response = client.post(self.URL, headers=AUTH, json={"skipped": True, "expected_version": 1})

        assert response.status_code == 409
        body = response.json()
        assert body['error'] == 'Conflict'
        assert body['latest']['version'] == 3

    @patch('raffle.routers.overrides.AccessService')
    def test_viewer_cannot_write(self, mock_access):
        mock_access.return_value.verify_session.return_value = 'viewer'
        response = client.post(self.URL, headers=AUTH, json={"expected_version": 0})
        assert response.status_code == 403

    @patch('raffle.routers.overrides.AccessService')
    def test_invalid_token(self, mock_access):
        mock_access.return_value.verify_session.side_effect = AccessDenied("Invalid token")
        response = client.post(self.URL, headers=AUTH, json={"expected_version": 0})
        assert response.status_code == 401

    def test_expected_version_required(self):
        response = client.post(self.URL, headers=AUTH, json={"override_spots": 1})
        assert response.status_code == 422


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
