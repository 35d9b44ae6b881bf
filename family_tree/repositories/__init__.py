"""
Repository layer for data access
"""

from .import_session_repository import ImportSessionRepository
from .person_repository import PersonRepository
from .relationship_repository import RelationshipRepository
from .user_repository import UserRepository


__all__ = [
    'ImportSessionRepository',
    'PersonRepository',
    'RelationshipRepository',
    'UserRepository',
]
