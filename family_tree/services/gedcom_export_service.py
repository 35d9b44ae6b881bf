"""
GEDCOM export of an owner's family tree
"""

from datetime import date

from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.shared.gedcom_formatter import DEFAULT_EXPORT_VERSION, SOURCE_NAME, SUPPORTED_EXPORT_VERSIONS
from family_tree.shared.gedcom_writer import GEDCOMWriter

from .base_service import BaseService
from .exceptions import ValidationError


def export_filename(export_date: date | None = None) -> str:
    export_date = export_date or date.today()
    return f"familytree_{export_date.strftime('%Y%m%d')}.ged"


class GedcomExportService(BaseService):
    """Builds GEDCOM from the stored people and relationships of one owner"""

    def __init__(self, db_session=None, person_repository=None, relationship_repository=None):
        super().__init__(db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)

    def _writer(self, version: str | None) -> GEDCOMWriter:
        version = version or DEFAULT_EXPORT_VERSION
        if version not in SUPPORTED_EXPORT_VERSIONS:
            raise ValidationError(
                f"Invalid version parameter. Must be one of: {', '.join(SUPPORTED_EXPORT_VERSIONS)}"
            )
        return GEDCOMWriter(version)

    def _load(self, user) -> tuple[list, list]:
        people = self.person_repository.get_for_owner(user.id)
        person_ids = {person.id for person in people}
        relationships = [
            rel for rel in self.relationship_repository.get_for_owner(user.id)
            if rel.person1_id in person_ids and rel.person2_id in person_ids
        ]
        return people, relationships

    def export(self, user, version: str | None = None, export_date: date | None = None) -> str:
        """
        GEDCOM document for everything ``user`` owns

        Raises:
            ValidationError: unsupported GEDCOM version
        """
        writer = self._writer(version)
        people, relationships = self._load(user)
        content = writer.generate(people, relationships, user_name=user.name or SOURCE_NAME, export_date=export_date)
        self.logger.info(
            f"Exported GEDCOM {writer.formatter.version} for user {user.id}: "
            f"{len(people)} people, {len(relationships)} relationships"
        )
        return content

    def export_to_file(self, user, output_file: str, version: str | None = None) -> int:
        """Write the export to ``output_file``; returns the number of people written"""
        writer = self._writer(version)
        people, relationships = self._load(user)
        writer.write_gedcom(people, relationships, output_file, user_name=user.name or SOURCE_NAME)
        self.logger.info(f"Wrote {len(people)} people to {output_file}")
        return len(people)
