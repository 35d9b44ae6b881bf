"""
SQLAlchemy models for the family tree: owners, people, relationships and GEDCOM upload sessions
"""

from datetime import UTC, datetime

from . import db


GENDERS = ('male', 'female', 'other', 'unspecified')
RELATIONSHIP_TYPES = ('parentOf', 'spouse')
PARENT_ROLES = ('mother', 'father')


def _utcnow():
    return datetime.now(UTC)


def _isoformat(value):
    return value.isoformat() if value else None


class User(db.Model):
    """Account that owns people and relationships"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(255))
    view_all_records = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    people = db.relationship('Person', back_populates='owner', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.email}>'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'view_all_records': self.view_all_records,
        }


class Person(db.Model):
    """Individual in a family tree"""
    __tablename__ = 'persons'

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(255), nullable=False, default='')
    last_name = db.Column(db.String(255), nullable=False, default='')
    gender = db.Column(db.String(20), nullable=False, default='unspecified')

    # YYYY-MM-DD, with 00 for an unknown month or day
    birth_date = db.Column(db.String(10))
    birth_place = db.Column(db.String(255))
    death_date = db.Column(db.String(10))
    death_place = db.Column(db.String(255))

    photo_url = db.Column(db.String(1024))
    notes = db.Column(db.Text)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    owner = db.relationship('User', back_populates='people')

    __table_args__ = (
        db.CheckConstraint(
            "gender IN ('male', 'female', 'other', 'unspecified')", name='ck_persons_gender'
        ),
    )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f'<Person {self.id} {self.full_name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'gender': self.gender,
            'birth_date': self.birth_date,
            'birth_place': self.birth_place,
            'death_date': self.death_date,
            'death_place': self.death_place,
            'photo_url': self.photo_url,
            'notes': self.notes,
            'user_id': self.user_id,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


class Relationship(db.Model):
    """Stored relationship row: parentOf with a role, or one direction of a spouse link"""
    __tablename__ = 'relationships'

    id = db.Column(db.Integer, primary_key=True)
    person1_id = db.Column(db.Integer, db.ForeignKey('persons.id', ondelete='CASCADE'), nullable=False, index=True)
    person2_id = db.Column(db.Integer, db.ForeignKey('persons.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    parent_role = db.Column(db.String(10))
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    # Rows go with either person through ON DELETE CASCADE
    person1 = db.relationship('Person', foreign_keys=[person1_id])
    person2 = db.relationship('Person', foreign_keys=[person2_id])

    __table_args__ = (
        db.UniqueConstraint('person1_id', 'person2_id', 'type', 'parent_role', name='uq_relationship'),
        db.CheckConstraint('person1_id <> person2_id', name='ck_relationship_not_self'),
        db.CheckConstraint("type IN ('parentOf', 'spouse')", name='ck_relationship_type'),
    )

    @property
    def key(self) -> tuple:
        """Identity of the row ignoring its surrogate id"""
        return (self.person1_id, self.person2_id, self.type, self.parent_role)

    def __repr__(self):
        role = f' ({self.parent_role})' if self.parent_role else ''
        return f'<Relationship {self.person1_id} {self.type}{role} {self.person2_id}>'


class GedcomImportSession(db.Model):
    """Parsed GEDCOM upload waiting for duplicate resolution and import"""
    __tablename__ = 'gedcom_import_sessions'

    id = db.Column(db.Integer, primary_key=True)
    upload_id = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    gedcom_version = db.Column(db.String(10))
    status = db.Column(db.String(20), nullable=False, default='previewed')  # previewed, resolved, imported, failed

    individuals = db.Column(db.JSON, nullable=False, default=list)
    families = db.Column(db.JSON, nullable=False, default=list)
    duplicates = db.Column(db.JSON, nullable=False, default=list)
    resolution_decisions = db.Column(db.JSON, nullable=False, default=list)
    summary = db.Column(db.JSON, nullable=False, default=dict)
    errors = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('upload_id', 'user_id', name='uq_import_session_upload'),
    )

    def __repr__(self):
        return f'<GedcomImportSession {self.upload_id} {self.status}>'
