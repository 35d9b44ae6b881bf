"""
People API blueprint: duplicate detection, parent candidates and person merge
"""

from flask import Blueprint, request

from family_tree.blueprints.blueprint_utils import get_current_user, get_json_body, handle_api_errors, threshold_arg
from family_tree.services.duplicate_service import DuplicateService
from family_tree.services.exceptions import ValidationError
from family_tree.services.person_merge_service import PersonMergeService
from family_tree.services.relationship_helpers import parse_id
from family_tree.services.relationship_service import RelationshipService
from family_tree.shared.api_response_formatter import APIResponseFormatter
from family_tree.shared.logging_config import get_project_logger


logger = get_project_logger(__name__)

api_people = Blueprint('api_people', __name__, url_prefix='/api/people')


def _merge_ids(data) -> tuple[int, int]:
    if not isinstance(data, dict):
        raise ValidationError('No data provided')
    ids = []
    for key in ('source_id', 'target_id'):
        if data.get(key) in (None, ''):
            raise ValidationError(f'{key} is required')
        value = parse_id(data[key]) if not isinstance(data[key], bool) else None
        if value is None:
            raise ValidationError(f'{key} must be a number')
        ids.append(value)
    return ids[0], ids[1]


@api_people.route('/duplicates', methods=['GET'])
@handle_api_errors
def all_duplicates():
    """Every pair of likely duplicates among the caller's people"""
    user = get_current_user()
    pairs = DuplicateService().all_duplicates(user, threshold_arg(), request.args.get('limit'))
    return APIResponseFormatter.success({'duplicates': pairs, 'count': len(pairs)})


@api_people.route('/<int:person_id>/duplicates', methods=['GET'])
@handle_api_errors
def person_duplicates(person_id):
    """Likely duplicates of one person"""
    user = get_current_user()
    matches = DuplicateService().duplicates_for_person(
        person_id, user, threshold_arg(), request.args.get('limit')
    )
    return APIResponseFormatter.success({'duplicates': matches, 'count': len(matches)})


@api_people.route('/<int:person_id>/parent-candidates', methods=['GET'])
@handle_api_errors
def parent_candidates(person_id):
    """People who may be chosen as this person's mother or father"""
    user = get_current_user()
    candidates = RelationshipService().parent_candidates(person_id, request.args.get('role'), user)
    return APIResponseFormatter.success({'candidates': candidates})


@api_people.route('/merge/preview', methods=['POST'])
@handle_api_errors
def merge_preview():
    user = get_current_user()
    source_id, target_id = _merge_ids(get_json_body())
    preview = PersonMergeService().preview(source_id, target_id, user)
    return APIResponseFormatter.success(preview)


@api_people.route('/merge', methods=['POST'])
@handle_api_errors
def merge():
    """Merge the source person into the target person"""
    user = get_current_user()
    source_id, target_id = _merge_ids(get_json_body())
    result = PersonMergeService().execute_merge(source_id, target_id, user)
    logger.info(f"User {user.id} merged person {source_id} into {target_id}")
    return APIResponseFormatter.success(result)
