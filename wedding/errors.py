import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 400

    def __init__(self, msg, errors=None):
        super().__init__(msg)
        self.msg = msg
        self.errors = errors

    def to_dict(self):
        payload = {"msg": self.msg}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(APIError):
    status_code = 400


class Forbidden(APIError):
    status_code = 403


class NotFound(APIError):
    status_code = 404


class Conflict(APIError):
    status_code = 409


class PaymentProviderError(APIError):
    status_code = 502


def invalid_form(form):
    """Build a ValidationError from a failed form."""
    return ValidationError("Invalid request", errors=form.errors)


def register_error_handlers(app):
    from wedding import db

    @app.errorhandler(APIError)
    def handle_api_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        db.session.rollback()
        return jsonify({"msg": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        logger.exception("Unhandled error")
        return jsonify({"msg": "Internal server error"}), 500
