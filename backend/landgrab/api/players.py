from flask import Blueprint, current_app, jsonify, request
from landgrab import get_game_service
from landgrab.errors import GeometryError, InvalidCoordinate, LandgrabError, RepositoryError


players = Blueprint('players', __name__)


@players.errorhandler(LandgrabError)
def handle_engine_error(exc):
    if isinstance(exc, (GeometryError, RepositoryError)):
        current_app.logger.warning(f"[api-error] {request.method} {request.path} {exc}")
    return jsonify({'error': exc.to_dict()}), exc.http_status


@players.route('', methods=['POST'])
def register_player():
    data = request.get_json(silent=True) or {}
    player = get_game_service().register(data.get('username'))
    return jsonify(player.to_dict()), 201


@players.route('', methods=['GET'])
def leaderboard():
    board = get_game_service().leaderboard()
    return jsonify([
        {'id': p.id, 'username': p.username, 'score': p.score, 'is_alive': p.alive}
        for p in board
    ])


@players.route('/<int:player_id>', methods=['GET'])
def get_player(player_id):
    return jsonify(get_game_service().get(player_id).to_dict())


@players.route('/<int:player_id>', methods=['PATCH'])
def rename_player(player_id):
    data = request.get_json(silent=True) or {}
    player = get_game_service().rename(player_id, data.get('username'))
    return jsonify(player.to_dict())


@players.route('/<int:player_id>', methods=['DELETE'])
def remove_player(player_id):
    get_game_service().remove(player_id)
    return jsonify({'message': 'Player removed'})


@players.route('/<int:player_id>/position', methods=['POST'])
def append_position(player_id):
    data = request.get_json(silent=True)
    if data is None:
        raise InvalidCoordinate("A JSON body with lat and lng is required")
    result = get_game_service().append_position(player_id, data)
    return jsonify(result.to_dict())


@players.route('/<int:player_id>/claim', methods=['POST'])
def claim_territory(player_id):
    outcome = get_game_service().claim_territory(player_id)
    return jsonify(outcome.summary())


@players.route('/<int:player_id>/respawn', methods=['GET'])
def respawn_status(player_id):
    return jsonify(get_game_service().respawn_status(player_id))


@players.route('/<int:player_id>/respawn', methods=['POST'])
def respawn(player_id):
    player = get_game_service().respawn(player_id)
    return jsonify(player.to_dict())
