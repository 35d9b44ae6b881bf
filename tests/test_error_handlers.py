"""
Tests for the application-wide JSON error handlers
"""
import io
from unittest.mock import patch

from family_tree.services.exceptions import DatabaseError


class TestErrorHandlers:
    """Test error responses outside the blueprints' own handling"""

    def test_unknown_route(self, client):
        """Test 404 for an unknown URL"""
        response = client.get('/api/nothing-here')

        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Resource not found', 'code': 'NOT_FOUND'}

    def test_wrong_method(self, client):
        """Test 405 for an unsupported method"""
        response = client.put('/api/relationships')

        assert response.status_code == 405
        assert response.get_json()['code'] == 'METHOD_NOT_ALLOWED'

    def test_payload_too_large(self, login, user):
        """Test 413 when the body exceeds MAX_CONTENT_LENGTH"""
        data = {'file': (io.BytesIO(b'x' * (2 * 1024 * 1024)), 'big.ged')}
        response = login(user).post('/api/gedcom/upload', data=data, content_type='multipart/form-data')

        assert response.status_code == 413
        assert response.get_json()['error'] == 'File size exceeds upload limit'

    def test_missing_session(self, client):
        """Test 401 without a signed-in user"""
        response = client.get('/api/people/duplicates')

        assert response.status_code == 401
        assert response.get_json()['error'] == 'Authentication required'

    def test_deleted_user_session(self, db, login, user):
        """Test a session pointing at a removed user is rejected"""
        client = login(user)
        db.session.delete(user)
        db.session.commit()

        assert client.get('/api/relationships').status_code == 401

    def test_service_error_from_blueprint(self, login, user):
        """Test service errors keep their status, code and retry flag"""
        with patch('family_tree.blueprints.api_relationships.RelationshipService.list_relationships',
                   side_effect=DatabaseError('Database connection error: gone')):
            response = login(user).get('/api/relationships')

        assert response.status_code == 500
        assert response.get_json() == {
            'success': False, 'error': 'Database connection error: gone', 'code': 'DATABASE_ERROR', 'can_retry': True,
        }

    def test_unexpected_exception(self, app, login, user):
        """Test anything else becomes a generic 500"""
        with patch('family_tree.blueprints.api_relationships.RelationshipService.list_relationships',
                   side_effect=RuntimeError('boom')):
            response = login(user).get('/api/relationships')

        assert response.status_code == 500
        assert response.get_json()['error'] == 'An unexpected error occurred'
