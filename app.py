import json
from datetime import date, datetime
from decimal import Decimal

from flask import Flask

from config import Config
from extensions import db, jwt, ma, migrate, socketio
import socket_events


# Custom JSON encoder for Decimal and datetime values returned by resources
class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super(DecimalEncoder, self).default(obj)


def _register_jwt_handlers():
    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return {"error": "Token has expired"}, 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return {"error": "Invalid token", "details": reason}, 401

    @jwt.unauthorized_loader
    def missing_token(reason):
        return {"error": "Authorization token required", "details": reason}, 401

    @jwt.needs_fresh_token_loader
    def stale_token(jwt_header, jwt_payload):
        return {"error": "Fresh token required"}, 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return {"error": "Token has been revoked"}, 401


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.setdefault("RESTFUL_JSON", {"cls": DecimalEncoder, "ensure_ascii": False})
    # flask-restful would otherwise turn JWT errors into 500s
    app.config["PROPAGATE_EXCEPTIONS"] = True
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    ma.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(app)

    _register_jwt_handlers()

    # Import resources here (after extensions init)
    from resources.auth import auth_bp
    from resources.drafts import drafts_bp
    from resources.logistic_requests import logistic_requests_bp
    from resources.transport_services import transport_services_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(transport_services_bp)
    app.register_blueprint(drafts_bp)
    app.register_blueprint(logistic_requests_bp)

    # Register socket events
    socket_events.register_socket_events(socketio)

    @app.route("/")
    def health():
        return {"status": "ok", "service": "cargo-logistics-backend"}

    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    socketio.run(app, host="0.0.0.0", port=8083, debug=True)
