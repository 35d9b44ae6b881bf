"""
Structured error reporting for GEDCOM imports
"""

import csv
import io

from .exceptions import ServiceError


CSV_HEADERS = ['Severity', 'Line', 'GEDCOM ID', 'Field', 'Code', 'Error']

_USER_MESSAGES = {
    'CONSTRAINT_VIOLATION': 'Database constraint violation: {message}',
    'TIMEOUT_ERROR': 'Import timed out - please try again. Large imports may take several minutes.',
}


def error_log_url(upload_id: str) -> str:
    return f'/api/gedcom/import/{upload_id}/errors.csv'


def classify_import_error(error: Exception, upload_id: str) -> tuple[dict, int]:
    """
    Body and status code for a failed import

    Constraint violations (409) and timeouts (504) are reported distinctly
    from everything else (500); all three are marked retryable. Client
    errors such as validation or ownership keep their own status and are
    not retryable.
    """
    if not isinstance(error, ServiceError):
        error = ServiceError(str(error))

    template = _USER_MESSAGES.get(error.code)
    if template:
        message = template.format(message=error.message)
    elif error.status_code >= 500:
        message = f'Import failed: {error.message}'
    else:
        message = error.message

    body = {
        'code': error.code,
        'message': message,
        'details': error.message,
        'can_retry': error.can_retry,
        'error_log_url': error_log_url(upload_id),
    }
    return body, error.status_code


def generate_error_log_csv(errors: list[dict]) -> str:
    """CSV of parse warnings and import errors, one row each"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for error in errors:
        writer.writerow([
            (error.get('severity') or '').capitalize(),
            '' if error.get('line') is None else error['line'],
            error.get('gedcom_id') or '',
            error.get('field') or '',
            error.get('code') or '',
            error.get('message') or '',
        ])
    return buffer.getvalue()
