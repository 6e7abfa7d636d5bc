from flask import jsonify
from pagebuilder.domain.exceptions import ConcurrencyConflict, ConstraintViolation, ValidationError


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        response = jsonify({
            "error": "ValidationError",
            "message": str(error)
        })
        response.status_code = 400
        return response

    @app.errorhandler(ConstraintViolation)
    def handle_constraint_violation(error):
        response = jsonify({
            "error": "ConstraintViolation",
            "operation": error.operation,
            "constraint": error.constraint,
            "message": str(error)
        })
        response.status_code = 409
        return response

    @app.errorhandler(ConcurrencyConflict)
    def handle_concurrency_conflict(error):
        response = jsonify({
            "error": "ConcurrencyConflict",
            "message": str(error)
        })
        response.status_code = 409
        return response
