"""
Duplicate person detection

Scores pairs of people on name, birth date and shared parents and returns the
pairs at or above a confidence threshold, best first.
"""

from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.shared.date_utils import date_parts
from family_tree.shared.models import MatchCandidate

from .base_service import BaseService
from .exceptions import NotFoundError, ValidationError, handle_service_exceptions


CONFIDENCE_THRESHOLD = 70
NAME_WEIGHT = 0.5
DATE_WEIGHT = 0.3
PARENT_WEIGHT = 0.2

# A field score above this counts as "matching"
FIELD_MATCH_SCORE = 70


def compare_names(name1: str | None, name2: str | None) -> float:
    """Similarity 0-100 of two names, ignoring case and outer whitespace"""
    if not name1 or not name2:
        return 0

    n1 = name1.lower().strip()
    n2 = name2.lower().strip()
    if not n1 or not n2:
        return 0
    if n1 == n2:
        return 100

    return max(0.0, min(100.0, Levenshtein.normalized_similarity(n1, n2) * 100))


def compare_dates(date1: str | None, date2: str | None) -> int:
    """
    Similarity 0-100 of two possibly partial dates

    Exact match or agreement on every component both sides know scores 100,
    full dates differing only in the day 75, same year but different month 50,
    different years or a missing date 0.
    """
    if not date1 or not date2:
        return 0
    if date1.strip() == date2.strip():
        return 100

    year1, month1, day1 = date_parts(date1)
    year2, month2, day2 = date_parts(date2)
    if year1 is None or year2 is None or year1 != year2:
        return 0

    if month1 is None or month2 is None:
        return 100
    if month1 != month2:
        return 50
    if day1 is None or day2 is None or day1 == day2:
        return 100
    return 75


def compare_parents(parents1: Iterable | None, parents2: Iterable | None) -> int:
    """100 when the two people share at least one parent, else 0"""
    if not parents1 or not parents2:
        return 0
    return 100 if set(parents1) & set(parents2) else 0


def calculate_match_confidence(person: MatchCandidate, candidate: MatchCandidate) -> dict:
    """Weighted confidence (rounded 0-100) and the list of fields that matched"""
    matching_fields = []

    name_score = compare_names(person.full_name, candidate.full_name)
    if name_score > FIELD_MATCH_SCORE:
        matching_fields.append('name')

    date_score = compare_dates(person.birth_date, candidate.birth_date)
    if date_score > FIELD_MATCH_SCORE:
        matching_fields.append('birth_date')

    parent_score = compare_parents(person.parent_ids, candidate.parent_ids)
    if parent_score > 0:
        matching_fields.append('parents')

    total = name_score * NAME_WEIGHT + date_score * DATE_WEIGHT + parent_score * PARENT_WEIGHT
    return {'confidence': round(total), 'matching_fields': matching_fields}


def _is_fractional(value) -> bool:
    # 70.0 is accepted, 70.9 is not
    return isinstance(value, float) and not value.is_integer()


def validate_threshold(value) -> int:
    """Threshold from a query value: None gives the default, otherwise an integer in [0, 100]"""
    if value is None or value == '':
        return CONFIDENCE_THRESHOLD
    if isinstance(value, bool) or _is_fractional(value):
        raise ValidationError('Invalid threshold parameter (must be 0-100)')
    try:
        threshold = int(value)
    except (TypeError, ValueError):
        raise ValidationError('Invalid threshold parameter (must be 0-100)')
    if not 0 <= threshold <= 100:
        raise ValidationError('Invalid threshold parameter (must be 0-100)')
    return threshold


def validate_limit(value) -> int | None:
    """Result limit from a query value: None means unlimited, otherwise a positive integer"""
    if value is None or value == '':
        return None
    if isinstance(value, bool) or _is_fractional(value):
        raise ValidationError('Invalid limit parameter (must be positive integer)')
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError('Invalid limit parameter (must be positive integer)')
    if limit < 1:
        raise ValidationError('Invalid limit parameter (must be positive integer)')
    return limit


def _sorted_and_limited(matches: list[dict], limit: int | None) -> list[dict]:
    # Stable sort keeps pool order among equal scores
    matches.sort(key=lambda match: match['confidence'], reverse=True)
    return matches[:limit] if limit is not None else matches


def find_duplicates(gedcom_individuals: list[dict], existing_people: list[MatchCandidate],
                    threshold: int = CONFIDENCE_THRESHOLD) -> list[dict]:
    """Match every parsed GEDCOM individual against stored people"""
    if not gedcom_individuals or not existing_people:
        return []

    duplicates = []
    for individual in gedcom_individuals:
        gedcom_person = MatchCandidate.from_gedcom(individual)
        for existing in existing_people:
            match = calculate_match_confidence(gedcom_person, existing)
            if match['confidence'] >= threshold:
                duplicates.append({
                    'gedcom_person': gedcom_person.summary(),
                    'existing_person': existing.summary(),
                    'confidence': match['confidence'],
                    'matching_fields': match['matching_fields'],
                })

    return _sorted_and_limited(duplicates, None)


def find_duplicates_for_person(target: MatchCandidate, candidates: list[MatchCandidate],
                               threshold: int = CONFIDENCE_THRESHOLD, limit: int | None = None) -> list[dict]:
    """Candidates resembling ``target``; the target itself is never reported"""
    matches = []
    for candidate in candidates:
        if candidate.id == target.id:
            continue
        match = calculate_match_confidence(target, candidate)
        if match['confidence'] >= threshold:
            matches.append({
                'person': candidate.summary(),
                'confidence': match['confidence'],
                'matching_fields': match['matching_fields'],
            })
    return _sorted_and_limited(matches, limit)


def find_all_duplicates(people: list[MatchCandidate], threshold: int = CONFIDENCE_THRESHOLD,
                        limit: int | None = None) -> list[dict]:
    """Every unordered pair of people at or above the threshold, reported once"""
    pairs = []
    for index, person in enumerate(people):
        for other in people[index + 1:]:
            if other.id == person.id:
                continue
            match = calculate_match_confidence(person, other)
            if match['confidence'] >= threshold:
                pairs.append({
                    'person1': person.summary(),
                    'person2': other.summary(),
                    'confidence': match['confidence'],
                    'matching_fields': match['matching_fields'],
                })
    return _sorted_and_limited(pairs, limit)


class DuplicateService(BaseService):
    """Duplicate detection over stored people, honouring owner isolation"""

    def __init__(self, db_session=None, person_repository=None, relationship_repository=None):
        super().__init__(db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)

    def _candidate_pool(self, user) -> list[MatchCandidate]:
        if user.view_all_records:
            people = self.person_repository.get_all()
            relationships = self.relationship_repository.get_all()
        else:
            people = self.person_repository.get_for_owner(user.id)
            relationships = self.relationship_repository.get_for_owner(user.id)

        parents: dict[int, set[int]] = {}
        for rel in relationships:
            if rel.type == 'parentOf':
                parents.setdefault(rel.person2_id, set()).add(rel.person1_id)

        return [MatchCandidate.from_person(person, parents.get(person.id)) for person in people]

    @handle_service_exceptions()
    def duplicates_for_person(self, person_id: int, user, threshold=None, limit=None) -> list[dict]:
        """Duplicates of one person; a person the caller cannot see is reported as not found"""
        threshold = validate_threshold(threshold)
        limit = validate_limit(limit)

        person = self.person_repository.get_by_id(person_id)
        if person is None or (not user.view_all_records and person.user_id != user.id):
            raise NotFoundError('Person not found')

        pool = self._candidate_pool(user)
        target = next((candidate for candidate in pool if candidate.id == person.id), None)
        if target is None:
            target = MatchCandidate.from_person(person)

        matches = find_duplicates_for_person(target, pool, threshold, limit)
        self.logger.info(f"Found {len(matches)} duplicate candidates for person {person_id}")
        return matches

    @handle_service_exceptions()
    def all_duplicates(self, user, threshold=None, limit=None) -> list[dict]:
        threshold = validate_threshold(threshold)
        limit = validate_limit(limit)

        pairs = find_all_duplicates(self._candidate_pool(user), threshold, limit)
        self.logger.info(f"Found {len(pairs)} duplicate pairs for user {user.id}")
        return pairs
