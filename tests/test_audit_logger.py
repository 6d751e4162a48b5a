"""
Tests for the audit trail, including entries whose actor no longer exists
"""
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError, OperationalError

from extensions import db
from models.audit_log import AuditAction, AuditLog
from models.business_unit import BusinessUnit
from services.audit_logger import AuditLogger, is_foreign_key_violation


class TestAuditLogger:

    def test_log_records_entry(self, app, make_user):
        user = make_user()

        entry = AuditLogger().log(user.id, AuditAction.CREATE, 'business_unit', 12, {'name': 'Enterprise'})

        assert entry is not None
        stored = db.session.get(AuditLog, entry.id)
        assert stored.user_id == user.id
        assert stored.action == 'CREATE'
        assert stored.entity_id == '12'
        assert stored.details == {'name': 'Enterprise'}

    def test_missing_actor_is_logged_without_user(self, app):
        entry = AuditLogger().log(777, 'DELETE', 'folder', 3, {'reason': 'cleanup'})

        assert entry is not None
        stored = db.session.get(AuditLog, entry.id)
        assert stored.user_id is None
        assert stored.details == {'reason': 'cleanup', 'originalUserId': 777, 'note': 'User record missing'}

    def test_other_failures_are_swallowed(self, app, make_user):
        user = make_user()
        logger = AuditLogger()

        with patch.object(logger, '_write', side_effect=OperationalError('INSERT', {}, Exception('disk I/O error'))):
            assert logger.log(user.id, 'CREATE', 'product', 1) is None

        assert AuditLog.query.count() == 0

    def test_failed_retry_is_swallowed(self, app):
        logger = AuditLogger()
        fk_error = IntegrityError('INSERT', {}, Exception('FOREIGN KEY constraint failed'))

        with patch.object(logger, '_write', side_effect=fk_error) as write:
            assert logger.log(5, 'CREATE', 'product', 1) is None

        assert write.call_count == 2
        assert write.call_args_list[1].args[0] is None

    def test_fk_detection(self):
        class PgError(Exception):
            pgcode = '23503'

        assert is_foreign_key_violation(IntegrityError('x', {}, PgError('violation')))
        assert is_foreign_key_violation(IntegrityError('x', {}, Exception('FOREIGN KEY constraint failed')))
        assert not is_foreign_key_violation(IntegrityError('x', {}, Exception('UNIQUE constraint failed')))

    def test_deleted_user_nulls_existing_entries(self, app, make_user):
        user = make_user()
        AuditLogger().log(user.id, 'LOGIN', 'user', user.id)

        db.session.delete(user)
        db.session.commit()
        db.session.expire_all()

        assert AuditLog.query.one().user_id is None

    def test_get_logs_paginates_newest_first(self, app, make_user):
        user = make_user()
        logger = AuditLogger()
        for n in range(3):
            logger.log(user.id, 'UPDATE', 'folder', n)

        page = logger.get_logs({'entity': 'folder'}, page=1, limit=2)

        assert [entry['entityId'] for entry in page['logs']] == ['2', '1']
        assert page['pagination']['total_count'] == 3
        assert page['pagination']['has_next'] is True


class TestAuditOverHttp:

    def test_write_succeeds_when_actor_was_deleted(self, client, admin_user, auth_headers):
        headers = auth_headers(admin_user)
        admin_id = admin_user.id
        db.session.delete(admin_user)
        db.session.commit()

        response = client.post('/assets/business-units', json={'name': 'Orphaned BU'}, headers=headers)

        assert response.status_code == 201
        assert BusinessUnit.query.filter_by(name='Orphaned BU').count() == 1
        entry = AuditLog.query.filter_by(entity='business_unit').one()
        assert entry.user_id is None
        assert entry.details['originalUserId'] == admin_id

    def test_audit_logs_endpoint(self, client, admin_headers):
        client.post('/assets/business-units', json={'name': 'Enterprise'}, headers=admin_headers)

        response = client.get('/admin/audit-logs?entity=business_unit', headers=admin_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body['pagination']['total_count'] == 1
        assert body['logs'][0]['details'] == {'name': 'Enterprise'}
