from flask import jsonify, request

from poker import db
from poker.services.voting.errors import VotingError, StorageError


def register_error_handlers(flask_app) -> None:
    @flask_app.errorhandler(VotingError)
    def handle_voting_error(exc):
        if isinstance(exc, StorageError):
            db.session.rollback()
            flask_app.logger.error(f"[error] path={request.path} code={exc.code} message={exc.message}")
        else:
            flask_app.logger.info(f"[rejected] path={request.path} code={exc.code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code
