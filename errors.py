"""
Error taxonomy shared by services and blueprints.

Every domain error carries the HTTP status it maps to; the handlers in
``register_error_handlers`` turn them into ``{"error", "code"}`` JSON.
"""

import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class StudyFlowError(Exception):
    status_code = 400
    code = 'error'
    default_message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFound(StudyFlowError):
    status_code = 404
    code = 'not_found'
    default_message = 'Not found'


class Expired(StudyFlowError):
    status_code = 410
    code = 'expired'
    default_message = 'Invitation has expired'


class Forbidden(StudyFlowError):
    status_code = 403
    code = 'forbidden'
    default_message = 'You are not allowed to do that'


class Unauthenticated(StudyFlowError):
    status_code = 401
    code = 'unauthenticated'
    default_message = 'Sign in required'


class ValidationError(StudyFlowError):
    status_code = 400
    code = 'validation_error'
    default_message = 'Invalid input'


class AdminCannotLeave(StudyFlowError):
    status_code = 409
    code = 'admin_cannot_leave'
    default_message = 'The admin cannot leave the leaderboard; delete it instead'


class UpstreamError(StudyFlowError):
    status_code = 503
    code = 'upstream_error'
    default_message = 'The data store is unavailable, try again'


def error_response(error):
    return jsonify({'error': error.message, 'code': error.code}), error.status_code


def register_error_handlers(app):
    from models import db

    @app.errorhandler(StudyFlowError)
    def handle_domain_error(e):
        return error_response(e)

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(e):
        db.session.rollback()
        logger.exception("Data store failure")
        return error_response(UpstreamError())

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        code = (e.name or 'error').lower().replace(' ', '_')
        return jsonify({'error': e.description, 'code': code}), e.code
