"""
End-to-end tests for the asset HTTP API
"""
import io

import pytest

from models.asset_file_assignment import AssetFileAssignment
from models.audit_log import AuditLog


def upload_form(filename='deck.pdf', content=b'%PDF-1.4 body', **fields):
    data = {'file': (io.BytesIO(content), filename)}
    data.update(fields)
    return data


@pytest.fixture
def tree(client, admin_headers):
    """Create BU -> product -> folder over HTTP and return the folder id"""
    bu = client.post('/assets/business-units', json={'name': 'Enterprise'}, headers=admin_headers).get_json()
    product = client.post(f"/assets/business-units/{bu['id']}/products",
                          json={'name': 'Firewall'}, headers=admin_headers).get_json()
    folder = client.post(f"/assets/products/{product['id']}/folders",
                         json={'name': 'Datasheets'}, headers=admin_headers).get_json()
    return {'bu': bu['id'], 'product': product['id'], 'folder': folder['id']}


def post_file(client, folder_id, headers, **kwargs):
    return client.post(f'/assets/folders/{folder_id}/files', data=upload_form(**kwargs),
                       headers=headers, content_type='multipart/form-data')


class TestHierarchyRoutes:

    def test_listing_each_level(self, client, admin_headers, tree):
        bus = client.get('/assets/business-units', headers=admin_headers).get_json()
        products = client.get(f"/assets/business-units/{tree['bu']}/products", headers=admin_headers).get_json()
        folders = client.get(f"/assets/products/{tree['product']}/folders", headers=admin_headers).get_json()

        assert [b['name'] for b in bus] == ['Enterprise']
        assert [p['name'] for p in products] == ['Firewall']
        assert [f['name'] for f in folders] == ['Datasheets']

    def test_update_and_soft_delete(self, client, admin_headers, tree):
        response = client.put(f"/assets/folders/{tree['folder']}", json={'name': 'Specs'}, headers=admin_headers)
        assert response.get_json()['name'] == 'Specs'

        assert client.delete(f"/assets/folders/{tree['folder']}", headers=admin_headers).status_code == 200
        folders = client.get(f"/assets/products/{tree['product']}/folders", headers=admin_headers).get_json()
        assert folders == []

    def test_missing_parent_is_404(self, client, admin_headers):
        response = client.post('/assets/business-units/999/products', json={'name': 'X'}, headers=admin_headers)
        assert response.status_code == 404
        assert 'msg' in response.get_json()

    def test_missing_name_is_400(self, client, admin_headers):
        response = client.post('/assets/business-units', json={}, headers=admin_headers)
        assert response.status_code == 400


class TestVersionScenario:
    """Upload, extend, pin and revert a document"""

    def test_pinned_user_sees_pinned_version_until_revert(self, client, admin_headers, tree, make_user, auth_headers):
        folder_id = tree['folder']
        v1 = post_file(client, folder_id, admin_headers, title='Deck').get_json()
        v2 = post_file(client, folder_id, admin_headers, filename='deck2.pdf',
                       updateVersionGroupId=v1['versionGroupId']).get_json()
        assert (v1['versionNumber'], v2['versionNumber']) == (1, 2)
        assert v2['versionGroupId'] == v1['versionGroupId'] == str(v1['id'])

        reader = make_user()
        reader_headers = auth_headers(reader)
        listing = client.get(f'/assets/folders/{folder_id}/files', headers=reader_headers).get_json()
        assert [f['id'] for f in listing] == [v2['id']]

        response = client.post('/assets/admin/assign-version', headers=admin_headers, json={
            'userId': reader.id, 'assetFileId': v1['id'], 'versionGroupId': v1['versionGroupId'],
        })
        assert response.status_code == 200

        listing = client.get(f'/assets/folders/{folder_id}/files', headers=reader_headers).get_json()
        assert [f['id'] for f in listing] == [v1['id']]
        effective = client.get(f"/assets/version-groups/{v1['versionGroupId']}/effective", headers=reader_headers)
        assert effective.get_json()['id'] == v1['id']

        assignments = client.get(f'/assets/admin/users/{reader.id}/assignments', headers=admin_headers).get_json()
        assert assignments[0]['latestVersion'] == 2

        response = client.post('/assets/admin/assign-version', headers=admin_headers, json={
            'userId': reader.id, 'assetFileId': None, 'versionGroupId': v1['versionGroupId'],
        })
        assert response.status_code == 200
        assert AssetFileAssignment.query.filter_by(user_id=reader.id).count() == 0

        listing = client.get(f'/assets/folders/{folder_id}/files', headers=reader_headers).get_json()
        assert [f['id'] for f in listing] == [v2['id']]

    def test_versions_are_ascending(self, client, admin_headers, tree):
        folder_id = tree['folder']
        v1 = post_file(client, folder_id, admin_headers).get_json()
        for _ in range(2):
            post_file(client, folder_id, admin_headers, updateVersionGroupId=v1['versionGroupId'])

        response = client.get(f"/assets/files/{v1['id']}/versions", headers=admin_headers)

        assert [v['versionNumber'] for v in response.get_json()] == [1, 2, 3]

    def test_unknown_group_is_400(self, client, admin_headers, tree):
        response = post_file(client, tree['folder'], admin_headers, updateVersionGroupId='does-not-exist')
        assert response.status_code == 400

    def test_assign_rejects_file_from_other_group(self, client, admin_headers, tree, make_user):
        folder_id = tree['folder']
        a = post_file(client, folder_id, admin_headers).get_json()
        b = post_file(client, folder_id, admin_headers, filename='other.pdf').get_json()

        response = client.post('/assets/admin/assign-version', headers=admin_headers, json={
            'userId': make_user().id, 'assetFileId': b['id'], 'versionGroupId': a['versionGroupId'],
        })

        assert response.status_code == 400


class TestFileRoutes:

    def test_download_returns_original_name(self, client, admin_headers, tree):
        asset = post_file(client, tree['folder'], admin_headers, filename='Price List.xlsx', content=b'xlsx-bytes').get_json()

        response = client.get(f"/assets/files/{asset['id']}/download", headers=admin_headers)

        assert response.status_code == 200
        assert response.data == b'xlsx-bytes'
        assert 'Price List.xlsx' in response.headers['Content-Disposition']

    def test_rejected_extension(self, client, admin_headers, tree):
        response = post_file(client, tree['folder'], admin_headers, filename='tool.exe')
        assert response.status_code == 400

    def test_body_over_content_limit_is_413(self, app, client, admin_headers, tree):
        app.config['MAX_CONTENT_LENGTH'] = 1024
        response = post_file(client, tree['folder'], admin_headers, content=b'x' * 4096)
        assert response.status_code == 413

    def test_metadata_archive_and_delete(self, client, admin_headers, tree):
        asset = post_file(client, tree['folder'], admin_headers, tags='["emea"]').get_json()
        file_url = f"/assets/files/{asset['id']}"

        updated = client.put(file_url, json={'description': 'Q3 numbers', 'audienceLevel': 'Partner'},
                             headers=admin_headers).get_json()
        assert updated['audienceLevel'] == 'Partner'
        assert updated['tags'] == ['emea']

        archived = client.post(f'{file_url}/archive', json={}, headers=admin_headers).get_json()
        assert archived['isArchived'] is True
        listing = client.get(f"/assets/folders/{tree['folder']}/files", headers=admin_headers).get_json()
        assert listing == []
        listing = client.get(f"/assets/folders/{tree['folder']}/files?showArchived=true", headers=admin_headers).get_json()
        assert [f['id'] for f in listing] == [asset['id']]

        assert client.delete(file_url, headers=admin_headers).status_code == 200
        assert client.get(file_url, headers=admin_headers).status_code == 404

    def test_tags_can_be_added_and_removed(self, client, admin_headers, tree):
        asset = post_file(client, tree['folder'], admin_headers).get_json()

        tag = client.post(f"/assets/files/{asset['id']}/tags", json={'tagName': 'pricing'}, headers=admin_headers)
        assert tag.status_code == 201
        removed = client.delete(f"/assets/files/{asset['id']}/tags/{tag.get_json()['id']}", headers=admin_headers)
        assert removed.status_code == 200
        assert client.get(f"/assets/files/{asset['id']}", headers=admin_headers).get_json()['tags'] == []

    def test_partner_cannot_open_internal_file(self, client, admin_headers, tree, make_user, auth_headers):
        asset = post_file(client, tree['folder'], admin_headers).get_json()
        partner = make_user(user_type='PARTNER')

        response = client.get(f"/assets/files/{asset['id']}", headers=auth_headers(partner))

        assert response.status_code == 404

    def test_search(self, client, admin_headers, tree):
        v1 = post_file(client, tree['folder'], admin_headers, title='Pricing 2024').get_json()
        post_file(client, tree['folder'], admin_headers, updateVersionGroupId=v1['versionGroupId'])

        results = client.get('/assets/admin/assets/search?q=pricing', headers=admin_headers).get_json()

        assert len(results) == 1
        assert results[0]['versionGroupId'] == v1['versionGroupId']

    def test_download_is_audited(self, client, admin_headers, tree):
        asset = post_file(client, tree['folder'], admin_headers).get_json()

        client.get(f"/assets/files/{asset['id']}/download", headers=admin_headers)

        entry = AuditLog.query.filter_by(action='DOWNLOAD').one()
        assert entry.entity_id == str(asset['id'])


class TestBulkUpload:

    def post_bulk(self, client, folder_id, headers, *names, **fields):
        data = {'files': [(io.BytesIO(b'content'), name) for name in names]}
        data.update(fields)
        return client.post(f'/assets/folders/{folder_id}/files/bulk', data=data,
                           headers=headers, content_type='multipart/form-data')

    def test_each_file_becomes_its_own_document(self, client, admin_headers, tree):
        response = self.post_bulk(client, tree['folder'], admin_headers,
                                  'brochure.pdf', 'notes.txt', 'setup.exe', audienceLevel='Partner')

        assert response.status_code == 201
        body = response.get_json()
        assert (body['totalUploaded'], body['totalFailed']) == (2, 1)
        assert body['errors'][0]['filename'] == 'setup.exe'
        uploaded = body['uploadedFiles']
        assert [f['title'] for f in uploaded] == ['brochure', 'notes']
        assert {f['versionNumber'] for f in uploaded} == {1}
        assert {f['audienceLevel'] for f in uploaded} == {'Partner'}
        assert uploaded[0]['versionGroupId'] != uploaded[1]['versionGroupId']

        logged = AuditLog.query.filter_by(action='BULK_UPLOAD').all()
        assert sorted(e.entity_id for e in logged) == sorted(str(f['id']) for f in uploaded)

    def test_no_files_is_400(self, client, admin_headers, tree):
        response = client.post(f"/assets/folders/{tree['folder']}/files/bulk", data={},
                               headers=admin_headers, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_requires_file_create_grant(self, client, make_user, auth_headers, tree):
        response = self.post_bulk(client, tree['folder'], auth_headers(make_user()), 'brochure.pdf')
        assert response.status_code == 403
