"""
Transient data models shared between the GEDCOM pipeline and duplicate detection
"""

from dataclasses import dataclass, field


@dataclass
class MatchCandidate:
    """The fields the duplicate detector compares, taken from a stored person or a parsed GEDCOM individual"""
    id: int | str
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    birth_date: str | None = None
    parent_ids: set = field(default_factory=set)

    @property
    def full_name(self) -> str:
        """'first last'; falls back to the raw GEDCOM name with its surname slashes removed"""
        combined = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return combined or " ".join(self.name.replace('/', ' ').split())

    @classmethod
    def from_person(cls, person, parent_ids=None) -> 'MatchCandidate':
        """Build from a stored Person row"""
        return cls(
            id=person.id,
            first_name=person.first_name or "",
            last_name=person.last_name or "",
            birth_date=person.birth_date,
            parent_ids=set(parent_ids or ()),
        )

    @classmethod
    def from_gedcom(cls, individual: dict) -> 'MatchCandidate':
        """Build from a parsed GEDCOM individual; parents are only known for stored people"""
        return cls(
            id=individual.get('gedcom_id'),
            first_name=individual.get('first_name') or "",
            last_name=individual.get('last_name') or "",
            name=individual.get('name') or "",
            birth_date=individual.get('birth_date'),
        )

    def summary(self) -> dict:
        return {
            'id': self.id,
            'name': self.full_name,
            'birth_date': self.birth_date,
        }


@dataclass
class GedcomFamilyUnit:
    """Family derived from stored relationships for export"""
    husband_id: int | None = None
    wife_id: int | None = None
    children_ids: list[int] = field(default_factory=list)

    @property
    def member_ids(self) -> list[int]:
        return [pid for pid in (self.husband_id, self.wife_id) if pid is not None]

    def add_child(self, child_id: int) -> None:
        if child_id not in self.children_ids:
            self.children_ids.append(child_id)
