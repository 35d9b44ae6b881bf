"""
Tests for the GEDCOM API blueprint
"""
import io
from datetime import date
from unittest.mock import patch

import pytest

from family_tree.database.models import Person, Relationship
from family_tree.services.exceptions import TimeoutError


def _upload(client, content, filename='family.ged', query=''):
    data = {'file': (io.BytesIO(content.encode('utf-8')), filename)}
    return client.post(f'/api/gedcom/upload{query}', data=data, content_type='multipart/form-data')


class TestGedcomUpload:
    """Test the upload endpoint"""

    def test_requires_login(self, client, sample_gedcom_data):
        """Test anonymous uploads are refused"""
        response = _upload(client, sample_gedcom_data)

        assert response.status_code == 401
        assert response.get_json() == {
            'success': False, 'error': 'Authentication required', 'code': 'AUTHENTICATION_REQUIRED',
            'can_retry': False,
        }

    def test_upload(self, login, user, make_person, sample_gedcom_data):
        """Test a successful upload returns the preview"""
        make_person(user, 'John', 'Smith', birth_date='1950-01-15')
        client = login(user)

        response = _upload(client, sample_gedcom_data)

        assert response.status_code == 201
        data = response.get_json()
        assert data['success'] is True
        assert data['file_name'] == 'family.ged'
        assert data['version'] == '5.5.1'
        assert data['summary']['duplicate_count'] == 1
        assert data['statistics']['total_families'] == 1
        assert data['upload_id']

    def test_upload_threshold(self, login, user, make_person, sample_gedcom_data):
        """Test the threshold query parameter"""
        make_person(user, 'John', 'Smith', birth_date='1950-01-15')
        client = login(user)

        assert _upload(client, sample_gedcom_data, query='?threshold=90').get_json()['summary']['duplicate_count'] == 0
        assert _upload(client, sample_gedcom_data, query='?threshold=abc').status_code == 400

    def test_missing_file(self, login, user):
        """Test a request without a file part"""
        response = login(user).post('/api/gedcom/upload', data={}, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No file provided'

    def test_wrong_extension(self, login, user, sample_gedcom_data):
        """Test non-GEDCOM files"""
        response = _upload(login(user), sample_gedcom_data, filename='family.txt')
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_unsupported_version(self, login, user):
        """Test a GEDCOM 5.5 file"""
        response = _upload(login(user), '0 HEAD\n1 GEDC\n2 VERS 5.5\n0 TRLR')
        assert response.status_code == 400
        assert 'not supported' in response.get_json()['error']

    def test_file_too_large(self, login, user):
        """Test uploads above MAX_CONTENT_LENGTH"""
        response = _upload(login(user), '0 HEAD\n' + 'x' * (2 * 1024 * 1024))
        assert response.status_code == 413
        assert response.get_json()['code'] == 'PAYLOAD_TOO_LARGE'


class TestGedcomPreviewEndpoints:
    """Test browsing and resolving a preview"""

    @pytest.fixture
    def uploaded(self, login, user, make_person, sample_gedcom_data):
        existing = make_person(user, 'John', 'Smith', birth_date='1950-01-15')
        client = login(user)
        upload_id = _upload(client, sample_gedcom_data).get_json()['upload_id']
        return client, upload_id, existing

    def test_individuals(self, uploaded):
        """Test paging through individuals"""
        client, upload_id, _ = uploaded

        response = client.get(f'/api/gedcom/preview/{upload_id}/individuals?limit=2&sort_order=desc')

        data = response.get_json()
        assert response.status_code == 200
        assert [ind['display_name'] for ind in data['individuals']] == ['John Smith', 'Jane Doe']
        assert data['pagination']['total_pages'] == 2

    def test_individuals_bad_sort(self, uploaded):
        """Test invalid sort field"""
        client, upload_id, _ = uploaded
        response = client.get(f'/api/gedcom/preview/{upload_id}/individuals?sort_by=height')
        assert response.status_code == 400

    def test_person(self, uploaded):
        """Test one individual with relatives"""
        client, upload_id, _ = uploaded

        data = client.get(f'/api/gedcom/preview/{upload_id}/person/@I3@').get_json()

        assert data['person']['gedcom_id'] == '@I3@'
        assert len(data['relationships']['parents']) == 2

    def test_person_not_found(self, uploaded):
        """Test an unknown GEDCOM id"""
        client, upload_id, _ = uploaded
        response = client.get(f'/api/gedcom/preview/{upload_id}/person/@I99@')
        assert response.status_code == 404

    def test_tree_summary_duplicates(self, uploaded):
        """Test tree, summary and duplicate endpoints"""
        client, upload_id, existing = uploaded

        tree = client.get(f'/api/gedcom/preview/{upload_id}/tree').get_json()
        summary = client.get(f'/api/gedcom/preview/{upload_id}/summary').get_json()
        duplicates = client.get(f'/api/gedcom/preview/{upload_id}/duplicates').get_json()

        assert len(tree['relationships']) == 3
        assert summary['summary']['total_individuals'] == 3
        assert duplicates['count'] == 1
        assert duplicates['duplicates'][0]['existing_person']['id'] == existing.id

    def test_unknown_upload(self, login, user):
        """Test a missing preview"""
        response = login(user).get('/api/gedcom/preview/missing/summary')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    def test_other_owner_cannot_read(self, uploaded, client, other_user):
        """Test previews are private to their owner"""
        _, upload_id, _ = uploaded
        with client.session_transaction() as sess:
            sess['user_id'] = other_user.id

        assert client.get(f'/api/gedcom/preview/{upload_id}/summary').status_code == 404

    def test_resolve_and_import(self, db, uploaded, user):
        """Test the full upload, resolve and import flow"""
        client, upload_id, existing = uploaded

        response = client.post(f'/api/gedcom/preview/{upload_id}/duplicates/resolve', json={
            'decisions': [{'gedcom_id': '@I1@', 'resolution': 'merge', 'existing_person_id': existing.id}],
        })
        assert response.status_code == 200
        assert response.get_json()['saved'] == 1

        response = client.post(f'/api/gedcom/import/{upload_id}')

        assert response.status_code == 200
        assert response.get_json()['imported'] == {'persons': 2, 'updated': 1, 'relationships': 4}
        assert db.session.execute(db.select(db.func.count()).select_from(Person)).scalar_one() == 3
        assert db.session.execute(db.select(db.func.count()).select_from(Relationship)).scalar_one() == 4

        again = client.post(f'/api/gedcom/import/{upload_id}')
        assert again.status_code == 409
        assert again.get_json()['code'] == 'CONFLICT'

        reopened = client.post(f'/api/gedcom/preview/{upload_id}/duplicates/resolve', json={'decisions': []})
        assert reopened.status_code == 409

    def test_resolve_invalid(self, uploaded):
        """Test bad decision bodies"""
        client, upload_id, _ = uploaded

        response = client.post(f'/api/gedcom/preview/{upload_id}/duplicates/resolve', json={'decisions': 'all'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'decisions must be a list'

        response = client.post(f'/api/gedcom/preview/{upload_id}/duplicates/resolve', json={
            'decisions': [{'gedcom_id': '@I1@', 'resolution': 'overwrite'}],
        })
        assert response.get_json()['error'] == 'Invalid resolution option: overwrite'

    def test_import_timeout_is_retryable(self, uploaded):
        """Test a timed out import reports 504 with retry details"""
        client, upload_id, _ = uploaded

        with patch('family_tree.blueprints.api_gedcom.GedcomImportService.execute_import',
                   side_effect=TimeoutError('The database operation timed out')):
            response = client.post(f'/api/gedcom/import/{upload_id}')

        assert response.status_code == 504
        data = response.get_json()
        assert data['code'] == 'TIMEOUT_ERROR'
        assert data['can_retry'] is True
        assert data['error_log_url'] == f'/api/gedcom/import/{upload_id}/errors.csv'
        assert data['details'] == 'The database operation timed out'

    def test_error_log_download(self, uploaded):
        """Test the CSV download"""
        client, upload_id, _ = uploaded

        response = client.get(f'/api/gedcom/import/{upload_id}/errors.csv')

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment' in response.headers['Content-Disposition']
        assert response.get_data(as_text=True) == 'Severity,Line,GEDCOM ID,Field,Code,Error\n'

    def test_clear_preview(self, uploaded):
        """Test deleting a preview"""
        client, upload_id, _ = uploaded

        response = client.delete(f'/api/gedcom/preview/{upload_id}')

        assert response.get_json() == {'success': True, 'message': 'Preview cleared'}
        assert client.get(f'/api/gedcom/preview/{upload_id}/summary').status_code == 404


class TestGedcomExport:
    """Test the export endpoint"""

    @pytest.fixture
    def tree(self, user, make_person, make_relationship):
        john = make_person(user, 'John', 'Smith', gender='male', birth_date='1950-01-15')
        jane = make_person(user, 'Jane', 'Doe', gender='female', birth_date='1952-00-00')
        make_relationship(john, jane, 'spouse')
        make_relationship(jane, john, 'spouse')
        return john, jane

    def test_export(self, login, user, tree, other_user, make_person):
        """Test a GEDCOM download containing only the caller's people"""
        make_person(other_user, 'Eve', 'Stone')

        response = login(user).get('/api/gedcom/export')

        assert response.status_code == 200
        assert response.mimetype == 'text/x-gedcom'
        expected_name = f"familytree_{date.today().strftime('%Y%m%d')}.ged"
        assert expected_name in response.headers['Content-Disposition']
        content = response.get_data(as_text=True)
        assert '2 VERS 5.5.1' in content
        assert '1 NAME John /Smith/' in content
        assert 'Stone' not in content
        assert content.count(' FAM\n') == 1
        assert '1 NAME Test Owner' in content

    def test_export_version_7(self, login, user, tree):
        """Test the version parameter and its format alias"""
        client = login(user)
        assert '2 VERS 7.0' in client.get('/api/gedcom/export?version=7.0').get_data(as_text=True)
        assert '2 VERS 7.0' in client.get('/api/gedcom/export?format=7.0').get_data(as_text=True)

    def test_export_invalid_version(self, login, user):
        """Test unsupported versions"""
        response = login(user).get('/api/gedcom/export?version=5.5')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid version parameter. Must be one of: 5.5.1, 7.0'

    def test_export_requires_login(self, client):
        """Test anonymous export"""
        assert client.get('/api/gedcom/export').status_code == 401
