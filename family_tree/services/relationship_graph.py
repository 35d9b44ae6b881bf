"""
Ancestor / descendant traversal and the legality filters for linking a parent

Traversal follows parentOf edges only, uses an explicit stack and a visited set,
and therefore terminates on cyclic or otherwise malformed data.
"""

from collections.abc import Callable, Iterable

from family_tree.shared.date_utils import birth_year

from .exceptions import ValidationError


MIN_PARENT_AGE_DIFFERENCE = 13


def _parent_edges(relationships: Iterable) -> list[tuple[int, int]]:
    """(parent_id, child_id) for every parentOf row"""
    return [(rel.person1_id, rel.person2_id) for rel in relationships if rel.type == 'parentOf']


def _walk(start_id: int, neighbours: dict[int, list[int]]) -> set[int]:
    visited: set[int] = set()
    stack = list(neighbours.get(start_id, ()))
    while stack:
        current = stack.pop()
        if current in visited or current == start_id:
            continue
        visited.add(current)
        stack.extend(neighbours.get(current, ()))
    return visited


def find_descendants(person_id: int, relationships: Iterable) -> set[int]:
    """Children, grandchildren and so on of ``person_id`` (never the person themself)"""
    children: dict[int, list[int]] = {}
    for parent_id, child_id in _parent_edges(relationships):
        children.setdefault(parent_id, []).append(child_id)
    return _walk(person_id, children)


def find_ancestors(person_id: int, relationships: Iterable) -> set[int]:
    """Parents, grandparents and so on of ``person_id`` (never the person themself)"""
    parents: dict[int, list[int]] = {}
    for parent_id, child_id in _parent_edges(relationships):
        parents.setdefault(child_id, []).append(parent_id)
    return _walk(person_id, parents)


def is_valid_parent_by_age(parent, child) -> bool:
    """At least 13 years between birth years; allowed when either birth year is unknown"""
    parent_year = birth_year(parent.birth_date)
    child_year = birth_year(child.birth_date)
    if parent_year is None or child_year is None:
        return True
    return child_year - parent_year >= MIN_PARENT_AGE_DIFFERENCE


def current_parent_id(child_id: int, role: str, relationships: Iterable) -> int | None:
    for rel in relationships:
        if rel.type == 'parentOf' and rel.person2_id == child_id and rel.parent_role == role:
            return rel.person1_id
    return None


def create_parent_filter(child, role: str, relationships: Iterable) -> Callable:
    """
    Predicate telling whether a person may be linked as ``child``'s mother or father

    Excluded: the child, whoever currently holds that role, every descendant
    and every ancestor of the child, and anyone fewer than 13 years older than
    the child when both birth years are known.
    """
    relationships = list(relationships)
    holder_id = current_parent_id(child.id, role, relationships)
    excluded = {child.id} | find_descendants(child.id, relationships) | find_ancestors(child.id, relationships)
    if holder_id is not None:
        excluded.add(holder_id)

    def allowed(person) -> bool:
        if person.id in excluded:
            return False
        return is_valid_parent_by_age(person, child)

    return allowed


def create_mother_filter(child, relationships: Iterable) -> Callable:
    return create_parent_filter(child, 'mother', relationships)


def create_father_filter(child, relationships: Iterable) -> Callable:
    return create_parent_filter(child, 'father', relationships)


def validate_parent_link(parent, child, relationships: Iterable) -> None:
    """Raise ValidationError when ``parent`` cannot become a parent of ``child``"""
    if parent.id == child.id:
        raise ValidationError('A person cannot be their own parent')
    relationships = list(relationships)
    if parent.id in find_descendants(child.id, relationships):
        raise ValidationError('A descendant cannot be linked as a parent')
    if not is_valid_parent_by_age(parent, child):
        raise ValidationError(
            f'A parent must be at least {MIN_PARENT_AGE_DIFFERENCE} years older than the child'
        )
