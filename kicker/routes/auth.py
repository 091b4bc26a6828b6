from flask import Blueprint, current_app, jsonify, request

from kicker.accounts import with_session
from kicker.errors import ValidationError

bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def json_payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON body.')
    return data


def set_session_cookie(response, token: str):
    cfg = current_app.config
    response.set_cookie(
        cfg['AUTH_COOKIE_NAME'],
        token,
        max_age=60 * 60 * 24 * cfg['SESSION_LIFETIME_DAYS'],
        path='/',
        secure=cfg['AUTH_COOKIE_SECURE'],
        httponly=True,
        samesite='Lax'
    )
    return response


def clear_session_cookie(response):
    cfg = current_app.config
    response.set_cookie(
        cfg['AUTH_COOKIE_NAME'],
        '',
        max_age=0,
        path='/',
        secure=cfg['AUTH_COOKIE_SECURE'],
        httponly=True,
        samesite='Lax'
    )
    return response


@bp.route('/register', methods=['POST'])
def register():
    data = json_payload()
    user, token = current_app.accounts.register(
        str(data.get('username') or ''),
        str(data.get('password') or ''),
        str(data.get('confirm') or '')
    )
    response = jsonify({'user': user.to_dict()})
    response.status_code = 201
    return set_session_cookie(response, token)


@bp.route('/login', methods=['POST'])
def login():
    data = json_payload()
    user, token = current_app.accounts.login(
        str(data.get('username') or ''),
        str(data.get('password') or '')
    )
    return set_session_cookie(jsonify({'user': user.to_dict()}), token)


@bp.route('/logout', methods=['POST'])
def logout():
    token = request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])
    current_app.accounts.close_session(token)
    return clear_session_cookie(jsonify({'ok': True}))


@bp.route('/me', methods=['GET'])
@with_session
def me(session_ctx):
    if not session_ctx.is_authenticated:
        return jsonify({'user': None}), 401
    return jsonify({'user': session_ctx.user.to_dict()})
