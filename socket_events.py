from flask import current_app, request
from flask_socketio import emit, join_room

from extensions import socketio
from utils.auth import AuthenticationError, verify_token
from utils.permissions import is_moderator

MODERATORS_ROOM = "moderators"

# Store active connections
active_users = {}


def user_room(user_id):
    return f"user:{user_id}"


def register_socket_events(sio):
    @sio.on("connect")
    def handle_connect(auth=None):
        """Authenticate the socket with an access token and join its rooms."""
        token = auth.get("token") if isinstance(auth, dict) else None
        if not token:
            return False

        try:
            identity = verify_token(token)
        except AuthenticationError as exc:
            current_app.logger.info("Socket rejected: %s", exc)
            return False

        active_users[request.sid] = identity
        join_room(user_room(identity.id))
        if is_moderator(identity.role):
            join_room(MODERATORS_ROOM)

        emit("connected", {"user_id": identity.id, "role": identity.role.value})

    @sio.on("disconnect")
    def handle_disconnect(*args):
        active_users.pop(request.sid, None)


def emit_request_status(logistic_request):
    """Push a status change to the creator and to the moderators."""
    payload = {
        "request_id": logistic_request.id,
        "status": logistic_request.status.value,
        "total_cost": float(logistic_request.total_cost or 0),
        "total_days": logistic_request.total_days,
    }
    try:
        socketio.emit("logistic_request_status", payload, to=user_room(logistic_request.creator_id))
        socketio.emit("logistic_request_status", payload, to=MODERATORS_ROOM)
    except Exception:
        current_app.logger.exception("Socket emit failed for logistic request %s", logistic_request.id)
