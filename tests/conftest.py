"""
Pytest configuration and fixtures for the family tree project
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from app import create_app
from family_tree.database import db as _db
from family_tree.database.models import Person, Relationship, User


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_gedcom_data():
    """Small GEDCOM 5.5.1 file: a couple and their child"""
    return """0 HEAD
1 SOUR Test
1 GEDC
2 VERS 5.5.1
1 CHAR UTF-8
0 @I1@ INDI
1 NAME John /Smith/
1 SEX M
1 BIRT
2 DATE 15 JAN 1950
2 PLAC Boston, MA
0 @I2@ INDI
1 NAME Jane /Doe/
1 SEX F
1 BIRT
2 DATE ABT 1952
0 @I3@ INDI
1 NAME Bobby /Smith/
1 SEX M
1 BIRT
2 DATE 3 MAR 1980
1 NOTE Likes fishing
2 CONT and sailing
0 @F1@ FAM
1 HUSB @I1@
1 WIFE @I2@
1 CHIL @I3@
0 TRLR"""


class BaseTestConfig:
    """Test configuration backed by an in-memory SQLite database"""
    def __init__(self):
        # App configuration
        self.secret_key = 'test-secret-key'

        # Database configuration
        self.sqlalchemy_database_uri = 'sqlite:///:memory:'
        self.sqlalchemy_track_modifications = False

        # Service configuration
        self.log_level = 'WARNING'
        self.duplicate_threshold = 70
        self.max_upload_mb = 1

    @property
    def max_content_length(self):
        return self.max_upload_mb * 1024 * 1024


@pytest.fixture
def test_config():
    return BaseTestConfig()


@pytest.fixture
def app(test_config):
    """Flask app with an empty schema; the app context stays pushed for the test"""
    app = create_app(test_config)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def user(db):
    """Owner account used by most tests"""
    owner = User(email='owner@example.com', name='Test Owner')
    db.session.add(owner)
    db.session.commit()
    return owner


@pytest.fixture
def other_user(db):
    """A second owner whose records must stay invisible"""
    other = User(email='other@example.com', name='Other Owner')
    db.session.add(other)
    db.session.commit()
    return other


@pytest.fixture
def login(client):
    """Put a user id into the session cookie"""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login


@pytest.fixture
def make_person(db):
    """Create and commit a Person"""
    def _make_person(owner, first_name, last_name='', **fields):
        person = Person(first_name=first_name, last_name=last_name, user_id=owner.id, **fields)
        db.session.add(person)
        db.session.commit()
        return person
    return _make_person


@pytest.fixture
def make_relationship(db):
    """Create and commit a normalized Relationship row"""
    def _make_relationship(person1, person2, rel_type, parent_role=None):
        rel = Relationship(
            person1_id=person1.id, person2_id=person2.id, type=rel_type,
            parent_role=parent_role, user_id=person1.user_id
        )
        db.session.add(rel)
        db.session.commit()
        return rel
    return _make_relationship
