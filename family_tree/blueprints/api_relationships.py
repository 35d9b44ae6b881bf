"""
Relationships API blueprint
"""

from flask import Blueprint

from family_tree.blueprints.blueprint_utils import get_current_user, get_json_body, handle_api_errors
from family_tree.services.relationship_service import RelationshipService
from family_tree.shared.api_response_formatter import APIResponseFormatter


api_relationships = Blueprint('api_relationships', __name__, url_prefix='/api/relationships')


@api_relationships.route('', methods=['GET'])
@handle_api_errors
def list_relationships():
    """The caller's relationships in API form"""
    user = get_current_user()
    relationships = RelationshipService().list_relationships(user)
    return APIResponseFormatter.success({'relationships': relationships})


@api_relationships.route('', methods=['POST'])
@handle_api_errors
def create_relationship():
    """Create a mother, father, parentOf or spouse relationship"""
    user = get_current_user()
    relationship = RelationshipService().create_relationship(get_json_body(), user)
    return APIResponseFormatter.success({'relationship': relationship}, status_code=201)
