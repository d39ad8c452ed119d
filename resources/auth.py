from flask import Blueprint, current_app, request
from flask_restful import Api, Resource
from marshmallow import ValidationError as MarshmallowValidationError, validate

from extensions import db
from models import RoleName, User
from schemas import user_schema
from utils.auth import any_authenticated_user, issue_tokens, permission_required, refresh_token_required
from utils.errors import ValidationError, clean_text
from utils.permissions import Action

auth_bp = Blueprint("auth", __name__)
api = Api(auth_bp)

_check_email = validate.Email(error="Invalid email address.")


def _password(data):
    password = data.get("password")
    if password is not None and not isinstance(password, str):
        raise ValidationError("password must be a string")
    return password or ""


def _auth_payload(user, message):
    payload = issue_tokens(user)
    payload.update({
        "status": "success",
        "message": message,
        "user": user_schema.dump(user),
        "expires_in": int(current_app.config["JWT_ACCESS_TOKEN_EXPIRES"].total_seconds()),
    })
    return payload


# REGISTER USER
class Register(Resource):
    def post(self):
        data = request.get_json(silent=True) or {}

        try:
            login, email, name, phone, role = (
                clean_text(data.get(field), field) for field in ("login", "email", "name", "phone", "role")
            )
            password = _password(data)
        except ValidationError as exc:
            return {"error": str(exc)}, 400
        email = email.lower()
        phone = phone or None
        role = role or RoleName.BUYER.value

        # --- Validate required fields ---
        if not all([login, email, password, name]):
            return {"error": "Login, email, password and name are required."}, 400

        if len(password) < 6:
            return {"error": "Password must be at least 6 characters long."}, 400

        try:
            _check_email(email)
        except MarshmallowValidationError as exc:
            return {"error": exc.messages[0]}, 400

        # --- Validate role ---
        allowed_roles = current_app.config.get("SELF_REGISTER_ROLES", (RoleName.BUYER.value,))
        if role not in allowed_roles:
            return {"error": f"Invalid role. Must be one of: {list(allowed_roles)}"}, 400

        if User.query.filter_by(login=login).first():
            return {"error": "user with this login already exists"}, 409

        user = User(login=login, email=email, name=name, phone=phone, role=RoleName(role))
        user.set_password(password)

        db.session.add(user)
        db.session.commit()

        current_app.logger.info("Registered user %s (%s)", user.login, user.get_role_name())
        return _auth_payload(user, "User registered successfully"), 201


# LOGIN USER
class Login(Resource):
    def post(self):
        data = request.get_json(silent=True) or {}
        try:
            login = clean_text(data.get("login"), "login")
            password = _password(data)
        except ValidationError as exc:
            return {"error": str(exc)}, 400

        if not all([login, password]):
            return {"error": "Login and password are required."}, 400

        user = User.query.filter_by(login=login).first()
        if not user or not user.check_password(password):
            return {"error": "invalid credentials"}, 401

        return _auth_payload(user, "Login successful."), 200


class Refresh(Resource):
    @refresh_token_required
    def post(self, current_user):
        user = db.session.get(User, current_user.id)
        if not user:
            return {"error": "user not found"}, 401

        return _auth_payload(user, "Tokens refreshed successfully"), 200


class Logout(Resource):
    @any_authenticated_user
    def post(self, current_user):
        # Tokens are stateless; the client forgets them.
        return {"status": "success", "message": "Logged out successfully"}, 200


# USER PROFILE (Protected)
class Profile(Resource):
    @any_authenticated_user
    def get(self, current_user):
        user = db.session.get(User, current_user.id)
        if not user:
            return {"error": "user not found"}, 404
        return {"status": "ok", "user": user_schema.dump(user)}, 200

    @permission_required(Action.EDIT_PROFILE)
    def put(self, current_user):
        user = db.session.get(User, current_user.id)
        if not user:
            return {"error": "user not found"}, 404

        data = request.get_json(silent=True) or {}
        try:
            email = clean_text(data.get("email"), "email").lower()
            password = _password(data)
            updates = {field: clean_text(data.get(field), field) for field in ("name", "phone")}
        except ValidationError as exc:
            return {"error": str(exc)}, 400

        if email:
            try:
                _check_email(email)
            except MarshmallowValidationError as exc:
                return {"error": exc.messages[0]}, 400

        if password and len(password) < 6:
            return {"error": "Password must be at least 6 characters long."}, 400

        if email:
            user.email = email
        for field, value in updates.items():
            if value:
                setattr(user, field, value)
        if password:
            user.set_password(password)

        db.session.commit()
        return {"status": "ok", "user": user_schema.dump(user)}, 200


api.add_resource(Register, "/api/users/register")
api.add_resource(Login, "/api/users/login")
api.add_resource(Refresh, "/api/users/refresh")
api.add_resource(Logout, "/api/users/logout")
api.add_resource(Profile, "/api/users/profile")
