"""
GEDCOM writer for exporting a family tree to GEDCOM text or files
"""

from datetime import date, datetime

from .gedcom_formatter import DEFAULT_EXPORT_VERSION, GEDCOMFileWriter, GEDCOMFormatter


def build_gedcom_file(people: list, relationships: list, version: str = DEFAULT_EXPORT_VERSION,
                      user_name: str = '', export_date: date | datetime | None = None) -> str:
    """Build a complete GEDCOM document as a string"""
    lines = GEDCOMFormatter(version).format_gedcom(people, relationships, user_name, export_date)
    return '\n'.join(lines) + '\n'


class GEDCOMWriter:
    """Write a family tree to GEDCOM"""

    def __init__(self, version: str = DEFAULT_EXPORT_VERSION):
        self.formatter = GEDCOMFormatter(version)
        self.file_writer = GEDCOMFileWriter()

    def generate(self, people: list, relationships: list, user_name: str = '',
                 export_date: date | datetime | None = None) -> str:
        lines = self.formatter.format_gedcom(people, relationships, user_name, export_date)
        return '\n'.join(lines) + '\n'

    def write_gedcom(self, people: list, relationships: list, output_file: str = "family-tree.ged",
                     user_name: str = '') -> None:
        """Write the family tree to a GEDCOM file"""
        lines = self.formatter.format_gedcom(people, relationships, user_name)
        self.file_writer.write_gedcom_file(lines, output_file)
