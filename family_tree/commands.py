"""
Flask CLI commands for the family tree
"""

import sys

import click

from family_tree.database import db, init_db
from family_tree.repositories.import_session_repository import ImportSessionRepository
from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.repositories.user_repository import UserRepository
from family_tree.services.exceptions import ServiceError
from family_tree.services.gedcom_export_service import GedcomExportService
from family_tree.services.gedcom_import_service import GedcomImportService
from family_tree.services.gedcom_preview_service import GedcomPreviewService
from family_tree.shared.gedcom_formatter import DEFAULT_EXPORT_VERSION, SUPPORTED_EXPORT_VERSIONS


def _require_user(user_id: int):
    user = UserRepository().get_by_id(user_id)
    if user is None:
        click.echo(f"❌ User {user_id} not found")
        sys.exit(1)
    return user


def register_commands(app):
    """Register all CLI commands with the Flask app"""

    @app.cli.command('init-db')
    def init_database():
        """Create all database tables."""
        init_db()
        click.echo("✅ Database tables created")

    @app.cli.command('create-user')
    @click.option('--email', required=True, help='Login email of the owner')
    @click.option('--name', default='', help='Display name, used as the GEDCOM submitter')
    @click.option('--view-all', is_flag=True, help='Let this user see every owner\'s records')
    def create_user(email, name, view_all):
        """Create an owner account."""
        users = UserRepository()
        if users.get_by_email(email) is not None:
            click.echo(f"❌ A user with email {email} already exists")
            sys.exit(1)

        user = users.create(email=email, name=name or None, view_all_records=view_all)
        db.session.commit()
        click.echo(f"✅ Created user {user.id} ({email})")

    @app.cli.command('export-gedcom')
    @click.option('--user-id', type=int, required=True, help='Owner whose tree is exported')
    @click.option('--output', '-o', default='family-tree.ged', help='Output GEDCOM file name')
    @click.option('--gedcom-version', type=click.Choice(SUPPORTED_EXPORT_VERSIONS),
                  default=DEFAULT_EXPORT_VERSION, help='GEDCOM version to write')
    def export_gedcom(user_id, output, gedcom_version):
        """Export an owner's family tree as a GEDCOM file."""
        user = _require_user(user_id)
        click.echo(f"📜 Exporting GEDCOM {gedcom_version}...")
        count = GedcomExportService().export_to_file(user, output, gedcom_version)
        click.echo(f"✅ Wrote {count} people to {output}")

    @app.cli.command('import-gedcom')
    @click.argument('gedcom_file', type=click.Path(exists=True, dir_okay=False))
    @click.option('--user-id', type=int, required=True, help='Owner receiving the imported people')
    @click.option('--skip-duplicates', is_flag=True, help='Skip individuals matching an existing person')
    def import_gedcom(gedcom_file, user_id, skip_duplicates):
        """Import a GEDCOM file for an owner."""
        user = _require_user(user_id)
        with open(gedcom_file, encoding='utf-8-sig') as f:
            content = f.read()

        preview_service = GedcomPreviewService()
        try:
            preview = preview_service.create_preview(content, user.id)
            summary = preview['summary']
            click.echo(f"🔍 Parsed GEDCOM {preview['version']}: {summary['total_individuals']} individuals, "
                       f"{summary['duplicate_count']} possible duplicates, {len(preview['errors'])} warnings")

            if skip_duplicates:
                best = {}
                for duplicate in preview['duplicates']:
                    best.setdefault(duplicate['gedcom_person']['id'], duplicate['existing_person']['id'])
                decisions = [
                    {'gedcom_id': gedcom_id, 'resolution': 'skip', 'existing_person_id': existing_id}
                    for gedcom_id, existing_id in best.items()
                ]
                preview_service.save_resolution_decisions(preview['upload_id'], user.id, decisions)

            result = GedcomImportService().execute_import(preview['upload_id'], user.id)
        except ServiceError as e:
            click.echo(f"❌ Import failed ({e.code}): {e.message}")
            sys.exit(1)

        imported = result['imported']
        click.echo("✅ Import completed")
        click.echo(f"  - People created: {imported['persons']}")
        click.echo(f"  - People updated: {imported['updated']}")
        click.echo(f"  - Relationships created: {imported['relationships']}")

    @app.cli.command()
    def status():
        """Show database statistics."""
        click.echo("🗄️ Database Statistics:")
        click.echo(f"  - Users: {UserRepository().count()}")
        click.echo(f"  - People: {PersonRepository().count()}")
        click.echo(f"  - Relationships: {RelationshipRepository().count()}")
        click.echo(f"  - GEDCOM upload sessions: {ImportSessionRepository().count()}")
