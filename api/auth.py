"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all
- POST /auth/users/<user_id>/logout-all (admin only) -> forced de-authorization
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues 1h access tokens and 7d refresh tokens (JWTs, separate secrets)
- Stores every refresh token as a session row so it can be revoked
- Errors raised by services.AuthService are rendered by api.errors
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort

from models.schemas.session import RefreshTokenSchema
from models.schemas.user import UserCreateSchema, UserOutSchema, UserLoginSchema
from services.auth_service import LoginResult
from services.stores import ClientContext
from utils.decorators import jwt_required, roles_required
from utils.extensions import get_auth_service

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()
refresh_token_schema = RefreshTokenSchema()


def client_context() -> ClientContext:
    """Client label and network origin of the current request."""
    user_agent = request.headers.get("User-Agent")
    return ClientContext(
        user_agent=user_agent[:255] if user_agent else None,
        ip_address=request.remote_addr,
    )


def _token_response(result: LoginResult) -> dict:
    return {
        "user": user_out_schema.dump(result.user),
        "access_token": result.access_token,
        "refresh_token": result.refresh_token,
        "token_type": "bearer",
        "expires_in": result.expires_in,
    }


@bp.post("/register")
def register():
    """
    Register a new user and open a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            name: { type: string }
            role: { type: string }
    responses:
      201:
        description: Created (returns tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    service = get_auth_service()
    if service.users.get_user_by_email(data["email"]):
        abort(409, description="Email already registered")

    result = service.register(
        data["email"],
        data["password"],
        name=data.get("name"),
        role=data["role"],
        client_context=client_context(),
    )
    return jsonify(_token_response(result)), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    result = get_auth_service().login(data["email"], data["password"], client_context())
    return jsonify(_token_response(result)), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns a new access token)
      401:
        description: Invalid session
      503:
        description: Session store unavailable, retry later
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_token_schema.load(payload)

    result = get_auth_service().refresh(data["refresh_token"])
    body = {
        "access_token": result.access_token,
        "token_type": "bearer",
        "expires_in": result.expires_in,
    }
    if result.refresh_token:
        body["refresh_token"] = result.refresh_token
    return jsonify(body), 200


@bp.post("/logout")
def logout():
    """
    logout: revokes the session behind a refresh token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Revoked, or already revoked
      401:
        description: Invalid session
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_token_schema.load(payload)

    already = get_auth_service().logout(data["refresh_token"])
    if already:
        return jsonify({"already_invalidated": True}), 200
    return jsonify({"invalidated": True}), 200


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    Log out everywhere: revokes every session of the caller
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Number of sessions revoked
      401:
        description: Unauthorized
    """
    count = get_auth_service().logout_all(g.current_user.id)
    return jsonify({"invalidated_count": count}), 200


@bp.post("/users/<user_id>/logout-all")
@roles_required(["admin"])
def force_logout(user_id):
    """
    Revoke every session of a user (admin only)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200:
        description: Number of sessions revoked
      403:
        description: Insufficient role
      404:
        description: Unknown user
    """
    service = get_auth_service()
    if not service.users.get_user_by_id(user_id):
        abort(404)
    count = service.logout_all(user_id)
    return jsonify({"invalidated_count": count}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200
