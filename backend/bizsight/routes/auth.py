# Overview: Account endpoints under /api/auth: register, login, logout, profile and password.

"""
Authentication API routes

- Self-registration creates the account and signs it in
- Session management with hashed bearer tokens
- Password change revokes every other session of the user
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError, RegistrationError
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, message: str):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }


@auth_bp.post("/register")
def register_route():
    """
    Create an account and return a session token for it.

    Body: fullName, username, email, password, mobileNumber
    (snake_case keys are accepted too).
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            full_name=data.get("fullName") or data.get("full_name"),
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            mobile_number=data.get("mobileNumber") or data.get("mobile_number"),
        )
    except (RegistrationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered user %s", user.username)
    return jsonify(_session_payload(user, "Registration successful")), 201


@auth_bp.post("/login")
def login_route():
    """Exchange username + password for a bearer token."""
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.warning("Failed login for %r from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        return jsonify(_session_payload(user, "Login successful")), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the caller's session token."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/profile")
@require_auth
def profile_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/update-profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_profile(
            g.current_user,
            full_name=data.get("fullName", data.get("full_name")),
            email=data.get("email"),
            mobile_number=data.get("mobileNumber", data.get("mobile_number")),
        )
    except RegistrationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"user": user.to_dict(), "message": "Profile updated successfully"}), 200


@auth_bp.put("/update-password")
@require_auth
def update_password_route():
    """
    Change password. Other sessions are revoked; the calling session stays valid.
    """
    data = request.get_json(silent=True) or {}
    current_password = data.get("currentPassword") or data.get("current_password")
    new_password = data.get("newPassword") or data.get("new_password")

    if not all([current_password, new_password]):
        return jsonify({"error": "currentPassword and newPassword required"}), 400

    try:
        auth_service.change_password(
            g.current_user,
            current_password=current_password,
            new_password=new_password,
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400

    revoked = session_service.revoke_all_user_sessions(
        g.current_user.id,
        reason="Password changed",
        keep_token=g.session_token,
    )
    current_app.logger.info("Password changed for user %s; %s other sessions revoked", g.current_user.id, revoked)
    return jsonify({"message": "Password updated successfully"}), 200
