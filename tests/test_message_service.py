"""
Tests for the system message service
Paginated scope-keyed caching, visibility and name decoration
"""
import unittest
from unittest.mock import Mock, patch

from opsconsole.ops.cache import PagedCache, MISS
from opsconsole.ops.errors import NotFound, PartialDataError, PersistenceError, ValidationError
from opsconsole.ops.repositories.message_repository import MESSAGE_TABLE
from opsconsole.ops.services.message_service import GLOBAL_CLIENT_NAME, UNKNOWN
from tests.support import FakeClock, make_store, make_services, seed_directory


class MessageServiceTestCase(unittest.TestCase):

    def setUp(self):
        self.engine, self.session_factory = make_store()
        seed_directory(self.session_factory)
        self.clock = FakeClock()
        self.services = make_services(self.session_factory, self.clock)
        self.messages = self.services.messages

    def tearDown(self):
        self.engine.dispose()

    def publish(self, text, client_id=None, **extra):
        self.clock.advance(1)
        return self.messages.create(dict({'message': text, 'client_id': client_id}, **extra))


class TestMessageVisibility(MessageServiceTestCase):

    def setUp(self):
        super().setUp()
        self.publish('Maintenance tonight')
        self.beta_message = self.publish('Beta invoice ready', 'Beta')

    def texts(self, scope):
        return sorted(item['message'] for item in self.messages.get_page(1, 10, scope)['items'])

    def test_tenant_sees_own_and_global(self):
        self.assertEqual(self.texts('Beta'), ['Beta invoice ready', 'Maintenance tonight'])

    def test_other_tenant_sees_only_global(self):
        self.assertEqual(self.texts('Acme'), ['Maintenance tonight'])

    def test_platform_sees_everything(self):
        self.assertEqual(self.texts(None), ['Beta invoice ready', 'Maintenance tonight'])

    def test_other_tenant_message_is_not_found(self):
        with self.assertRaises(NotFound):
            self.messages.get_by_id(self.beta_message['id'], 'Acme')
        self.assertEqual(self.messages.get_by_id(self.beta_message['id'], 'Beta')['client_id'], 'Beta')

    def test_get_visible_matches_first_page(self):
        visible = sorted(m['message'] for m in self.messages.get_visible('Acme'))
        self.assertEqual(visible, ['Maintenance tonight'])


class TestMessagePagination(MessageServiceTestCase):

    def test_page_metadata(self):
        for i in range(7):
            self.publish(f"message {i}")

        first = self.messages.get_page(1, 5)
        second = self.messages.get_page(2, 5)

        self.assertEqual(len(first['items']), 5)
        self.assertTrue(first['hasMore'])
        self.assertEqual(first['totalCount'], 7)
        self.assertEqual(first['totalPages'], 2)
        self.assertEqual(len(second['items']), 2)
        self.assertFalse(second['hasMore'])
        # newest first
        self.assertEqual(first['items'][0]['message'], 'message 6')

    def test_default_page_size(self):
        self.assertEqual(self.messages.get_page()['pageSize'], 5)

    def test_invalid_page(self):
        with self.assertRaises(ValidationError):
            self.messages.get_page(0, 5)

    def test_oversized_page_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.messages.get_page(1, 10 ** 9, 'Acme')
        self.assertEqual(self.messages.get_page(1, 100, 'Acme')['pageSize'], 100)
        self.assertEqual(len(self.messages.page_cache), 1)

    def test_expired_messages_are_hidden_unless_requested(self):
        self.publish('old news', expires_at='2026-01-05T09:00:30')
        self.publish('still current')
        self.clock.advance(60)

        default = [m['message'] for m in self.messages.get_page(1, 10)['items']]
        everything = self.messages.get_page(1, 10, filters={'include_expired': True})['items']

        self.assertEqual(default, ['still current'])
        self.assertEqual({m['message']: m['is_expired'] for m in everything},
                         {'old news': True, 'still current': False})

    def test_type_filter(self):
        self.publish('heads up', type='warning')
        self.publish('fyi')

        result = self.messages.get_page(1, 10, filters={'type': 'warning'})

        self.assertEqual([m['message'] for m in result['items']], ['heads up'])

    def test_unknown_type_filter_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.messages.get_page(1, 10, filters={'type': 'shout'})


class TestMessageCache(MessageServiceTestCase):

    def test_page_is_cached_per_scope(self):
        self.publish('hello')
        with patch.object(self.messages.message_repo, 'page', wraps=self.messages.message_repo.page) as page:
            self.messages.get_page(1, 5, 'Acme')
            self.messages.get_page(1, 5, 'Acme')
            self.messages.get_page(1, 5, 'Beta')

            self.assertEqual(page.call_count, 2)

    def test_filtered_reads_are_not_cached(self):
        with patch.object(self.messages.message_repo, 'page', wraps=self.messages.message_repo.page) as page:
            self.messages.get_page(1, 5, 'Acme', filters={'type': 'info'})
            self.messages.get_page(1, 5, 'Acme', filters={'type': 'info'})

            self.assertEqual(page.call_count, 2)
        self.assertEqual(len(self.messages.page_cache), 0)

    def test_tenant_write_invalidates_only_that_tenant_and_platform(self):
        """A tenant write is visible on its next read while other tenants keep their pages"""
        # Arrange
        self.messages.get_page(1, 5, 'Acme')
        self.messages.get_page(1, 5, 'Beta')
        self.messages.get_page(1, 5, None)
        beta_key = PagedCache.make_key(1, 5, 'Beta')
        beta_entry = self.messages.page_cache.peek(beta_key)

        # Act
        self.publish('Acme only', 'Acme')

        # Assert
        acme = self.messages.get_page(1, 5, 'Acme')
        self.assertEqual([m['message'] for m in acme['items']], ['Acme only'])
        self.assertIs(self.messages.page_cache.peek(beta_key), beta_entry)
        self.assertIsNot(self.messages.page_cache.get(beta_key), MISS)
        self.assertIs(self.messages.page_cache.get(PagedCache.make_key(1, 5, 'platform')), MISS)

    def test_global_write_invalidates_every_scope(self):
        self.messages.get_page(1, 5, 'Acme')
        self.messages.get_page(1, 5, 'Beta')

        self.publish('Everyone')

        self.assertEqual(len(self.messages.page_cache), 0)
        self.assertEqual(self.messages.get_page(1, 5, 'Beta')['items'][0]['message'], 'Everyone')

    def test_failed_write_keeps_cached_pages(self):
        self.messages.get_page(1, 5, 'Acme')
        with patch.object(self.messages.message_repo, 'create', side_effect=PersistenceError('down')):
            with self.assertRaises(PersistenceError):
                self.publish('lost', 'Acme')

        self.assertEqual(len(self.messages.page_cache), 1)

    def test_force_refresh_refetches(self):
        self.messages.get_page(1, 5, 'Acme')
        with patch.object(self.messages.message_repo, 'page', wraps=self.messages.message_repo.page) as page:
            self.messages.get_page(1, 5, 'Acme', force_refresh=True)
            self.assertEqual(page.call_count, 1)

    def test_expired_pages_do_not_accumulate(self):
        """Browsing many pages must not grow the cache past what is still fresh"""
        # Arrange
        for page in range(1, 501):
            self.messages.get_page(page, 5, 'Acme')
        self.assertEqual(len(self.messages.page_cache), 500)
        self.clock.advance(3600)

        # Act
        self.messages.get_page(1, 5, 'Acme')

        # Assert
        self.assertEqual(len(self.messages.page_cache), 1)

    def test_page_expires_after_ttl(self):
        self.messages.get_page(1, 5, 'Acme')
        self.clock.advance(301)
        with patch.object(self.messages.message_repo, 'page', wraps=self.messages.message_repo.page) as page:
            self.messages.get_page(1, 5, 'Acme')
            self.assertEqual(page.call_count, 1)


class TestMessageDecoration(MessageServiceTestCase):

    def test_names_are_joined(self):
        self.messages.create({'message': 'Acme note', 'client_id': 'Acme'}, actor='user-2')
        self.clock.advance(1)
        self.messages.create({'message': 'For all'}, actor='user-1')

        items = {m['message']: m for m in self.messages.get_page(1, 5)['items']}

        self.assertEqual(items['Acme note']['created_by_name'], 'Sam Reed')
        self.assertEqual(items['Acme note']['client_name'], 'Acme Motors')
        self.assertEqual(items['For all']['client_name'], GLOBAL_CLIENT_NAME)
        self.assertTrue(items['For all']['is_global'])

    def test_unknown_publisher_and_client_get_placeholders(self):
        self.messages.create({'message': 'orphan', 'client_id': 'Gamma'}, actor='ghost')

        item = self.messages.get_page(1, 5)['items'][0]

        self.assertEqual(item['created_by_name'], UNKNOWN)
        self.assertEqual(item['client_name'], UNKNOWN)

    def test_failed_lookups_degrade_instead_of_failing(self):
        self.messages.create({'message': 'Acme note', 'client_id': 'Acme'}, actor='user-2')
        directory = self.messages.directory_repo
        directory.user_names = Mock(side_effect=PartialDataError('users down'))
        directory.client_names = Mock(side_effect=PartialDataError('clients down'))

        item = self.messages.get_page(1, 5)['items'][0]

        self.assertEqual(item['message'], 'Acme note')
        self.assertEqual(item['created_by_name'], UNKNOWN)
        self.assertEqual(item['client_name'], UNKNOWN)

    def test_lookups_are_batched(self):
        for i in range(4):
            self.publish(f"note {i}", 'Acme')
        directory = self.messages.directory_repo
        with patch.object(directory, 'user_names', wraps=directory.user_names) as users, \
                patch.object(directory, 'client_names', wraps=directory.client_names) as clients:
            self.messages.get_page(1, 5)

            self.assertEqual(users.call_count, 1)
            self.assertEqual(clients.call_count, 1)


class TestMessageWrites(MessageServiceTestCase):

    def test_create_requires_text_and_known_type(self):
        with self.assertRaises(ValidationError):
            self.messages.create({'message': '   '})
        with self.assertRaises(ValidationError):
            self.messages.create({'message': 'x', 'type': 'shout'})

    def test_tenant_creates_into_own_scope(self):
        row = self.messages.create({'message': 'ours'}, 'Acme')
        self.assertEqual(row['client_id'], 'Acme')

        with self.assertRaises(ValidationError):
            self.messages.create({'message': 'theirs', 'client_id': 'Beta'}, 'Acme')

    def test_writes_are_audited(self):
        audit = self.services.status.audit_repo
        row = self.publish('draft', 'Acme')
        self.messages.update(row['id'], {'message': 'final'})
        self.messages.delete(row['id'])

        entries = audit.latest(MESSAGE_TABLE, 'Acme', 10)

        self.assertEqual([e['action'] for e in entries],
                         ['system_message_delete', 'system_message_update', 'system_message_create'])
        self.assertEqual(entries[1]['old_values']['message'], 'draft')
        self.assertEqual(entries[1]['new_values']['message'], 'final')
        self.assertEqual(entries[0]['summary'],
                         f"User deleted system message system messages record {row['id']}")

    def test_reassigning_scope_invalidates_both_tenants(self):
        row = self.publish('moving', 'Acme')
        self.messages.get_page(1, 5, 'Acme')
        self.messages.get_page(1, 5, 'Beta')

        self.messages.update(row['id'], {'client_id': 'Beta'})

        self.assertEqual(self.messages.get_page(1, 5, 'Acme')['items'], [])
        self.assertEqual(self.messages.get_page(1, 5, 'Beta')['items'][0]['message'], 'moving')

    def test_update_of_invisible_message_is_not_found(self):
        row = self.publish('beta only', 'Beta')
        with self.assertRaises(NotFound):
            self.messages.update(row['id'], {'message': 'hijacked'}, 'Acme')

    def test_bulk_create(self):
        rows = self.messages.bulk_create('Rates changing', 'warning', ['Acme', 'Beta'])

        self.assertEqual(sorted(r['client_id'] for r in rows), ['Acme', 'Beta'])
        self.assertEqual(self.messages.bulk_create('nothing', 'info', []), [])

    def test_cleanup_removes_only_expired(self):
        self.publish('gone soon', 'Acme', expires_at='2026-01-05T09:00:10')
        self.publish('stays')
        self.messages.get_page(1, 5, 'Acme')
        self.clock.advance(60)

        removed = self.messages.cleanup_expired()

        self.assertEqual(removed, 1)
        self.assertIs(self.messages.page_cache.get(PagedCache.make_key(1, 5, 'Acme')), MISS)
        texts = [m['message'] for m in self.messages.get_page(1, 5, filters={'include_expired': True})['items']]
        self.assertEqual(texts, ['stays'])

    def test_statistics(self):
        self.publish('a', 'Acme', type='warning', expires_at='2026-01-05T09:00:05')
        self.publish('b', 'Acme')
        self.publish('c', 'Beta')
        self.clock.advance(60)

        stats = self.messages.get_statistics('Acme')

        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['byType'], {'warning': 1, 'info': 1})
        self.assertEqual((stats['active'], stats['expired']), (1, 1))


if __name__ == '__main__':
    unittest.main()
