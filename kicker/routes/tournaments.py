from flask import Blueprint, current_app, jsonify, request

from kicker.accounts import with_session
from kicker.routes.auth import json_payload
from kicker.validation import validate_tournament_payload

bp = Blueprint('tournaments', __name__, url_prefix='/api/tournaments')


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name, type=int)
    return value if value and value > 0 else default


# ==================== Tournaments ====================

@bp.route('', methods=['GET'])
def list_tournaments():
    """List tournaments, newest first, with optional search."""
    page = _int_arg('page', 1)
    page_size = min(_int_arg('page_size', 12), 50)
    items, total = current_app.registry.list_tournaments(
        q=request.args.get('q', ''),
        page=page,
        page_size=page_size
    )
    return jsonify({
        'items': [t.to_summary() for t in items],
        'page': page,
        'page_size': page_size,
        'total': total
    })


@bp.route('', methods=['POST'])
@with_session
def create_tournament(session_ctx):
    user = session_ctx.require_user()
    name, players, scoring = validate_tournament_payload(json_payload())
    tournament = current_app.registry.create_tournament(user, name, players, scoring)
    return jsonify({'tournament': tournament.to_dict()}), 201


@bp.route('/<int:tournament_id>', methods=['GET'])
def get_tournament(tournament_id: int):
    tournament = current_app.registry.get_tournament(tournament_id)
    return jsonify({'tournament': tournament.to_dict()})


@bp.route('/<int:tournament_id>', methods=['DELETE'])
@with_session
def delete_tournament(tournament_id: int, session_ctx):
    current_app.registry.delete_tournament(tournament_id, session_ctx.require_user())
    return jsonify({'ok': True})


@bp.route('/<int:tournament_id>/leaderboard', methods=['GET'])
def get_leaderboard(tournament_id: int):
    """Per-player and overall totals, recomputed from the match list."""
    tournament = current_app.registry.get_tournament(tournament_id)
    leaderboard = current_app.registry.leaderboard(tournament_id, tournament)
    return jsonify(leaderboard.to_dict())


# ==================== Matches ====================

@bp.route('/<int:tournament_id>/matches', methods=['GET'])
def list_matches(tournament_id: int):
    matches = current_app.registry.list_matches(tournament_id)
    return jsonify({'matches': [m.to_dict() for m in matches]})


@bp.route('/<int:tournament_id>/matches', methods=['POST'])
@with_session
def create_match(tournament_id: int, session_ctx):
    user = session_ctx.require_user()
    match = current_app.registry.create_match(tournament_id, user, json_payload())
    return jsonify({'match': match.to_dict()}), 201


@bp.route('/<int:tournament_id>/matches/next', methods=['GET'])
def next_match_no(tournament_id: int):
    return jsonify({'next': current_app.registry.next_match_no(tournament_id)})


@bp.route('/<int:tournament_id>/matches/<int:match_id>', methods=['GET'])
def get_match(tournament_id: int, match_id: int):
    match = current_app.registry.get_match(tournament_id, match_id)
    return jsonify({'match': match.to_dict()})


@bp.route('/<int:tournament_id>/matches/<int:match_id>', methods=['PUT'])
@with_session
def update_match(tournament_id: int, match_id: int, session_ctx):
    user = session_ctx.require_user()
    match = current_app.registry.update_match(tournament_id, match_id, user, json_payload())
    return jsonify({'match': match.to_dict()})


@bp.route('/<int:tournament_id>/matches/<int:match_id>', methods=['DELETE'])
@with_session
def delete_match(tournament_id: int, match_id: int, session_ctx):
    current_app.registry.delete_match(tournament_id, match_id, session_ctx.require_user())
    return jsonify({'ok': True})
