"""
Unit tests for tenant scope rules
The in-memory and SQL forms of the visibility rule must agree
"""
import unittest
from datetime import datetime

from opsconsole.models import CallLog
from opsconsole.ops.errors import ValidationError
from opsconsole.ops.scope import (
    PLATFORM_KEY, assign_scope, filter_visible, is_visible, parse_scope,
    scope_key, visibility_clause,
)
from tests.support import make_store


class TestParseScope(unittest.TestCase):

    def test_platform_aliases(self):
        for value in (None, '', 'platform', 'global', 'ALL', '  platform  '):
            self.assertIsNone(parse_scope(value), value)

    def test_tenant_id_is_kept(self):
        self.assertEqual(parse_scope(' Acme '), 'Acme')
        self.assertEqual(parse_scope(42), '42')

    def test_rejects_malformed_ids(self):
        for value in ('-acme', 'a b', "x'; drop table", 'a' * 65):
            with self.assertRaises(ValidationError):
                parse_scope(value)

    def test_scope_key(self):
        self.assertEqual(scope_key(None), PLATFORM_KEY)
        self.assertEqual(scope_key('Acme'), 'Acme')


class TestVisibility(unittest.TestCase):
    """Every caller/record combination"""

    CALLERS = (None, 'Acme', 'Beta')
    RECORDS = (None, '', 'Acme', 'Beta')

    def test_cross_product(self):
        expected = {
            (None, None): True, (None, ''): True, (None, 'Acme'): True, (None, 'Beta'): True,
            ('Acme', None): True, ('Acme', ''): True, ('Acme', 'Acme'): True, ('Acme', 'Beta'): False,
            ('Beta', None): True, ('Beta', ''): True, ('Beta', 'Acme'): False, ('Beta', 'Beta'): True,
        }
        for caller in self.CALLERS:
            for record in self.RECORDS:
                self.assertEqual(is_visible(caller, record), expected[(caller, record)], (caller, record))

    def test_filter_visible(self):
        records = [{'id': 1, 'client_id': 'Acme'}, {'id': 2, 'client_id': None}, {'id': 3, 'client_id': 'Beta'}]
        self.assertEqual([r['id'] for r in filter_visible(records, 'Acme')], [1, 2])
        self.assertEqual([r['id'] for r in filter_visible(records, None)], [1, 2, 3])

    def test_sql_clause_matches_in_memory_rule(self):
        # Arrange
        engine, session_factory = make_store()
        session = session_factory()
        try:
            for index, client in enumerate(self.RECORDS):
                session.add(CallLog(id=f"call-{index}", client_id=client,
                                    call_start_time=datetime(2026, 1, 1, 9, index)))
            session.commit()

            for caller in self.CALLERS:
                # Act
                rows = session.query(CallLog).filter(visibility_clause(CallLog.client_id, caller)).all()

                # Assert
                from_sql = sorted(row.id for row in rows)
                in_memory = sorted(
                    f"call-{index}" for index, client in enumerate(self.RECORDS)
                    if is_visible(caller, client)
                )
                self.assertEqual(from_sql, in_memory, caller)
        finally:
            session.close()
            engine.dispose()


class TestAssignScope(unittest.TestCase):

    def test_platform_caller_writes_anywhere(self):
        self.assertEqual(assign_scope(None, 'Beta'), 'Beta')
        self.assertIsNone(assign_scope(None, None))

    def test_tenant_caller_defaults_to_own_tenant(self):
        self.assertEqual(assign_scope('Acme', None), 'Acme')
        self.assertEqual(assign_scope('Acme', 'Acme'), 'Acme')

    def test_tenant_caller_cannot_write_elsewhere(self):
        with self.assertRaises(ValidationError):
            assign_scope('Acme', 'Beta')


if __name__ == '__main__':
    unittest.main()
