"""
End-to-end tests for the ops blueprint
JWT auth, scope middleware and services over an in-memory database
"""
import unittest

from opsconsole.app import create_app
from opsconsole.models import User
from opsconsole.routes.auth_helpers import issue_token
from tests.support import seed_directory

SECRET = 'test-secret'


class TestOpsRoutes(unittest.TestCase):

    def setUp(self):
        self.app = create_app({'DATABASE_URL': 'sqlite:///:memory:', 'SECRET_KEY': SECRET})
        self.client = self.app.test_client()
        session_factory = self.app.extensions['ops_session_factory']
        seed_directory(session_factory)
        session = session_factory()
        try:
            session.add(User(id='user-3', email='nobody@example.com', first_name='No',
                             last_name='Client', role='staff', client_id=None))
            session.commit()
        finally:
            session.close()

    def tearDown(self):
        self.app.extensions['ops_engine'].dispose()

    def headers(self, user_id, **extra):
        headers = {'Authorization': f"Bearer {issue_token(user_id, SECRET)}"}
        headers.update(extra)
        return headers

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()['database'])

    def test_missing_token(self):
        response = self.client.get('/api/ops/status')
        self.assertEqual(response.status_code, 401)

    def test_bad_token(self):
        response = self.client.get('/api/ops/status', headers={'Authorization': 'Bearer nope'})
        self.assertEqual(response.status_code, 401)

    def test_user_without_client_is_forbidden(self):
        response = self.client.get('/api/ops/status', headers=self.headers('user-3'))
        self.assertEqual(response.status_code, 403)

    def test_tenant_status_round_trip(self):
        # Arrange
        headers = self.headers('user-2')

        # Act
        first = self.client.get('/api/ops/status', headers=headers)
        updated = self.client.put('/api/ops/status', headers=headers,
                                  json={'status': 'maintenance', 'message': 'DB upgrade'})
        history = self.client.get('/api/ops/status/history', headers=headers)

        # Assert
        self.assertEqual(first.get_json()['data']['status'], 'active')
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.get_json()['data']['updated_by'], 'user-2')
        entries = history.get_json()['data']
        self.assertEqual(entries[0]['status'], 'maintenance')
        self.assertEqual(entries[0]['actor_name'], 'Sam Reed')
        self.assertEqual(entries[0]['scope_key'], 'Acme')

    def test_tenant_cannot_use_platform_routes(self):
        response = self.client.get('/api/ops/status/summary', headers=self.headers('user-2'))
        self.assertEqual(response.status_code, 403)

    def test_admin_can_narrow_with_header(self):
        admin = self.headers('user-1')
        self.client.post('/api/ops/messages', headers=admin, json={'message': 'Beta only', 'client_id': 'Beta'})
        self.client.post('/api/ops/messages', headers=admin, json={'message': 'Everyone'})

        everything = self.client.get('/api/ops/messages', headers=admin).get_json()['data']
        as_acme = self.client.get('/api/ops/messages',
                                  headers=self.headers('user-1', **{'X-Client-ID': 'Acme'})).get_json()['data']

        self.assertEqual(everything['totalCount'], 2)
        self.assertEqual([m['message'] for m in as_acme['items']], ['Everyone'])

    def test_tenant_message_lands_in_own_scope(self):
        response = self.client.post('/api/ops/messages', headers=self.headers('user-2'),
                                    json={'message': 'Acme note'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['data']['client_id'], 'Acme')

    def test_admin_runs_health_check(self):
        """The monitor's registered database check drives the platform status"""
        # Arrange
        admin = self.headers('user-1')
        self.client.put('/api/ops/status', headers=admin, json={'status': 'inactive', 'message': 'down'})

        # Act
        response = self.client.post('/api/ops/status/health-check', headers=admin)

        # Assert
        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertEqual(data['checks'], ['database'])
        self.assertEqual(data['failed_checks'], [])
        self.assertEqual(data['status']['status'], 'active')
        self.assertEqual(data['status']['updated_by'], 'system')

    def test_tenant_cannot_run_health_check(self):
        response = self.client.post('/api/ops/status/health-check', headers=self.headers('user-2'))
        self.assertEqual(response.status_code, 403)

    def test_active_messages_for_tenant(self):
        admin = self.headers('user-1')
        self.client.post('/api/ops/messages', headers=admin, json={'message': 'Beta only', 'client_id': 'Beta'})
        self.client.post('/api/ops/messages', headers=admin, json={'message': 'Everyone'})
        self.client.post('/api/ops/messages', headers=admin,
                         json={'message': 'Expired', 'expires_at': '2000-01-01T00:00:00'})

        response = self.client.get('/api/ops/messages/active', headers=self.headers('user-2'))

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['data'][0]['message'], 'Everyone')
        self.assertTrue(body['data'][0]['is_global'])

    def test_oversized_message_page_is_rejected(self):
        response = self.client.get('/api/ops/messages?page_size=1000000000', headers=self.headers('user-2'))
        self.assertEqual(response.status_code, 400)

    def test_lead_crud(self):
        headers = self.headers('user-2')
        created = self.client.post('/api/ops/leads', headers=headers,
                                   json={'full_name': 'Ann', 'phone_number': '555-0100'})
        lead_id = created.get_json()['data']['id']

        patched = self.client.patch(f"/api/ops/leads/{lead_id}/status", headers=headers,
                                    json={'status': 'contacted'})
        listed = self.client.get('/api/ops/leads', headers=headers)
        deleted = self.client.delete(f"/api/ops/leads/{lead_id}", headers=headers)
        missing = self.client.get(f"/api/ops/leads/{lead_id}", headers=headers)

        self.assertEqual(created.status_code, 201)
        self.assertEqual(patched.get_json()['data']['status'], 'contacted')
        self.assertEqual(listed.get_json()['count'], 1)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(missing.status_code, 404)


if __name__ == '__main__':
    unittest.main()
