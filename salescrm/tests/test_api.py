"""
HTTP-level tests for the report, customer and user routers.

Uses FastAPI's TestClient with the database and settings dependencies
overridden (see conftest.client), so no database is required.
"""

from unittest.mock import AsyncMock, patch

import jwt
import pytest

from salescrm.models.enums import Role
from salescrm.services.repository import SnapshotTimeoutError
from salescrm.tests.conftest import user_row


pytestmark = pytest.mark.api


class TestAuthentication:

    def test_missing_header_is_401(self, client) -> None:
        response = client.get('/reports/analysis', params={'groupBy': 'channel'})
        assert response.status_code == 401

    def test_wrong_scheme_is_401(self, client) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'channel'},
            headers={'Authorization': 'Basic abc'},
        )
        assert response.status_code == 401

    def test_tampered_token_is_401(self, client, test_settings) -> None:
        token = jwt.encode({'sub': 'boss', 'role': 'supervisor'}, 'wrong-secret', algorithm='HS256')
        response = client.get(
            '/reports/summary-tables',
            headers={'Authorization': f'Bearer {token}'},
        )
        assert response.status_code == 401

    def test_unauthenticated_request_never_reads_the_database(self, client, mock_conn) -> None:
        client.get('/reports/summary-tables')
        mock_conn.fetch.assert_not_called()


class TestAnalysisEndpoint:

    def test_supervisor_channel_analysis(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'channel'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 200

        body = response.json()
        assert [g['dimension'] for g in body['results']] == ['ads', 'referral']
        assert body['results'][1]['metrics']['firstDeposit'] == 1
        assert body['totals']['total'] == 3
        assert body['meta']['groupBy'] == 'channel'

    def test_manager_sees_only_own_team(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'agent'},
            headers=auth_header('mgr1', Role.MANAGER),
        )
        body = response.json()
        assert [g['dimension'] for g in body['results']] == ['agent1']
        assert body['results'][0]['dimensionLabel'] == '小明(Ming)'
        assert body['totals']['total'] == 2

    def test_created_by_cannot_widen_visibility(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'channel', 'createdBy': 'agent2'},
            headers=auth_header('agent1', Role.AGENT),
        )
        assert response.status_code == 200
        assert response.json()['totals']['total'] == 0

    def test_support_role_gets_empty_result(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'day'},
            headers=auth_header('ops', Role.SUPPORT),
        )
        assert response.status_code == 200
        assert response.json()['results'] == []

    def test_unknown_dimension_is_422(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'planet'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 422

    def test_missing_dimension_is_422(self, client, auth_header) -> None:
        response = client.get('/reports/analysis', headers=auth_header('boss', Role.SUPERVISOR))
        assert response.status_code == 422

    def test_malformed_date_is_422(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'day', 'dateStart': 'yesterday'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 422

    def test_date_range_filters_and_echoes(self, client, auth_header) -> None:
        response = client.get(
            '/reports/analysis',
            params={'groupBy': 'day', 'dateStart': '2026-03-03', 'dateEnd': '2026-03-03'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        body = response.json()
        assert [g['dimension'] for g in body['results']] == ['2026-03-03']
        assert body['results'][0]['dimensionLabel'] == '3月3日'
        assert body['meta']['dateStart'] == '2026-03-03'

    def test_snapshot_timeout_is_504(self, client, auth_header) -> None:
        with patch(
            'salescrm.api.reports.build_analysis',
            new=AsyncMock(side_effect=SnapshotTimeoutError('slow')),
        ):
            response = client.get(
                '/reports/analysis',
                params={'groupBy': 'channel'},
                headers=auth_header('boss', Role.SUPERVISOR),
            )
        assert response.status_code == 504

    def test_unexpected_error_is_500(self, client, auth_header) -> None:
        with patch(
            'salescrm.api.reports.build_analysis',
            new=AsyncMock(side_effect=RuntimeError('boom')),
        ):
            response = client.get(
                '/reports/analysis',
                params={'groupBy': 'channel'},
                headers=auth_header('boss', Role.SUPERVISOR),
            )
        assert response.status_code == 500


class TestSummaryTablesEndpoint:

    def test_bundle_shape(self, client, auth_header) -> None:
        response = client.get(
            '/reports/summary-tables',
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 200

        body = response.json()
        assert [row['date'] for row in body['dateChannelMatrix']] == ['2026-03-03', '2026-03-02']
        assert body['dateChannelMatrix'][1]['channels'] == {'ads': 1, 'referral': 0}
        for name in ('channelSummary', 'agentSummary', 'dateSummary', 'teamSummary'):
            assert body[name]['totals']['total'] == 3
        assert body['meta'] == {
            'channels': ['ads', 'referral'],
            'channelLabels': {'ads': 'ads', 'referral': 'referral'},
            'dates': ['2026-03-03', '2026-03-02'],
            'teams': ['A组', 'B组'],
            'recordCount': 3,
        }


class TestOverviewAndCustomers:

    def test_overview_for_agent(self, client, auth_header) -> None:
        response = client.get('/reports/overview', headers=auth_header('agent1', Role.AGENT))
        assert response.status_code == 200

        body = response.json()
        assert body['stats']['total'] == 2
        assert body['stats']['openedAccount'] == 2
        assert [a['id'] for a in body['filterOptions']['agents']] == ['agent1']

    def test_customers_newest_first(self, client, auth_header) -> None:
        response = client.get('/customers', headers=auth_header('mgr1', Role.MANAGER))
        assert response.status_code == 200

        body = response.json()
        assert body['count'] == 2
        assert [c['id'] for c in body['customers']] == ['C2', 'C1']


class TestSupervisorEndpoint:

    def test_non_supervisor_is_403(self, client, auth_header, mock_conn) -> None:
        response = client.patch(
            '/users/agent2/supervisor',
            json={'supervisorId': 'mgr1'},
            headers=auth_header('dir1', Role.DIRECTOR),
        )
        assert response.status_code == 403
        mock_conn.fetch.assert_not_called()

    def test_reassignment(self, client, auth_header, mock_conn, users) -> None:
        mock_conn.fetchrow.return_value = user_row(
            users[6].model_copy(update={'supervisorId': 'mgr1'})
        )
        response = client.patch(
            '/users/agent2/supervisor',
            json={'supervisorId': 'mgr1'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 200
        assert response.json()['supervisorId'] == 'mgr1'

    def test_cycle_is_409(self, client, auth_header) -> None:
        response = client.patch(
            '/users/dir1/supervisor',
            json={'supervisorId': 'agent1'},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 409

    def test_unknown_user_is_404(self, client, auth_header) -> None:
        response = client.patch(
            '/users/ghost/supervisor',
            json={'supervisorId': None},
            headers=auth_header('boss', Role.SUPERVISOR),
        )
        assert response.status_code == 404


class TestHealth:

    def test_health(self, client) -> None:
        assert client.get('/health').json() == {'status': 'healthy'}
