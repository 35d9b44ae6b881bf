"""
GEDCOM API blueprint: upload and preview, duplicate resolution, import and export
"""

from datetime import date

from flask import Blueprint, Response, request

from family_tree.blueprints.blueprint_utils import get_current_user, get_json_body, handle_api_errors, threshold_arg
from family_tree.services.duplicate_service import validate_threshold
from family_tree.services.exceptions import ServiceError
from family_tree.services.gedcom_export_service import GedcomExportService, export_filename
from family_tree.services.gedcom_import_service import GedcomImportService
from family_tree.services.gedcom_preview_service import GedcomPreviewService, read_upload
from family_tree.services.import_errors import classify_import_error
from family_tree.shared.api_response_formatter import APIResponseFormatter
from family_tree.shared.logging_config import get_project_logger


logger = get_project_logger(__name__)

api_gedcom = Blueprint('api_gedcom', __name__, url_prefix='/api/gedcom')


@api_gedcom.route('/upload', methods=['POST'])
@handle_api_errors
def upload():
    """Parse an uploaded .ged file and store its preview"""
    user = get_current_user()
    uploaded = request.files.get('file')
    content = read_upload(uploaded.filename if uploaded else None, uploaded.read() if uploaded else b'')

    result = GedcomPreviewService().create_preview(
        content, user.id, threshold=validate_threshold(threshold_arg())
    )
    result['file_name'] = uploaded.filename
    return APIResponseFormatter.success(result, status_code=201)


@api_gedcom.route('/preview/<upload_id>/individuals', methods=['GET'])
@handle_api_errors
def preview_individuals(upload_id):
    user = get_current_user()
    result = GedcomPreviewService().get_preview_individuals(
        upload_id, user.id,
        page=request.args.get('page'),
        limit=request.args.get('limit'),
        sort_by=request.args.get('sort_by'),
        sort_order=request.args.get('sort_order'),
        search=request.args.get('search'),
    )
    return APIResponseFormatter.success(result)


@api_gedcom.route('/preview/<upload_id>/person/<gedcom_id>', methods=['GET'])
@handle_api_errors
def preview_person(upload_id, gedcom_id):
    """One previewed individual with parents, spouses and children"""
    user = get_current_user()
    return APIResponseFormatter.success(GedcomPreviewService().get_preview_person(upload_id, user.id, gedcom_id))


@api_gedcom.route('/preview/<upload_id>/tree', methods=['GET'])
@handle_api_errors
def preview_tree(upload_id):
    user = get_current_user()
    return APIResponseFormatter.success(GedcomPreviewService().get_preview_tree(upload_id, user.id))


@api_gedcom.route('/preview/<upload_id>/summary', methods=['GET'])
@handle_api_errors
def preview_summary(upload_id):
    user = get_current_user()
    return APIResponseFormatter.success({'summary': GedcomPreviewService().get_preview_summary(upload_id, user.id)})


@api_gedcom.route('/preview/<upload_id>/duplicates', methods=['GET'])
@handle_api_errors
def preview_duplicates(upload_id):
    user = get_current_user()
    duplicates = GedcomPreviewService().get_duplicates(upload_id, user.id)
    return APIResponseFormatter.success({'duplicates': duplicates, 'count': len(duplicates)})


@api_gedcom.route('/preview/<upload_id>/duplicates/resolve', methods=['POST'])
@handle_api_errors
def resolve_duplicates(upload_id):
    """Store merge / skip / import_as_new decisions for the upload"""
    user = get_current_user()
    data = get_json_body()
    decisions = data.get('decisions') if isinstance(data, dict) else None
    result = GedcomPreviewService().save_resolution_decisions(upload_id, user.id, decisions)
    return APIResponseFormatter.success(result)


@api_gedcom.route('/preview/<upload_id>', methods=['DELETE'])
@handle_api_errors
def clear_preview(upload_id):
    user = get_current_user()
    GedcomPreviewService().clear_preview(upload_id, user.id)
    return APIResponseFormatter.success(message='Preview cleared')


@api_gedcom.route('/import/<upload_id>', methods=['POST'])
@handle_api_errors
def import_upload(upload_id):
    """Import a previewed upload; failures carry a structured, retry-aware body"""
    user = get_current_user()
    try:
        result = GedcomImportService().execute_import(upload_id, user.id)
    except ServiceError as e:
        body, status_code = classify_import_error(e, upload_id)
        logger.warning(f"Import of {upload_id} failed with {body['code']}: {body['details']}")
        return APIResponseFormatter.error(body['message'], status_code=status_code, code=body['code'], details={
            'details': body['details'],
            'can_retry': body['can_retry'],
            'error_log_url': body['error_log_url'],
        })
    return APIResponseFormatter.success(result)


@api_gedcom.route('/import/<upload_id>/errors.csv', methods=['GET'])
@handle_api_errors
def import_error_log(upload_id):
    """Parse warnings and errors of an upload as a CSV download"""
    user = get_current_user()
    csv_text = GedcomPreviewService().get_error_log_csv(upload_id, user.id)
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="gedcom-errors-{upload_id}.csv"'}
    )


@api_gedcom.route('/export', methods=['GET'])
@handle_api_errors
def export():
    """Download the caller's tree as GEDCOM 5.5.1 (default) or 7.0"""
    user = get_current_user()
    version = request.args.get('version') or request.args.get('format')
    today = date.today()
    content = GedcomExportService().export(user, version, export_date=today)
    logger.debug(f"Serving GEDCOM export of {len(content)} bytes for user {user.id}")
    return Response(
        content,
        mimetype='text/x-gedcom',
        headers={'Content-Disposition': f'attachment; filename="{export_filename(today)}"'}
    )
