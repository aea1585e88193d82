from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Landgrab game server!'})

@main.route('/config')
def game_config():
    # Rules clients need to render hints and countdowns
    cfg = current_app.config
    return jsonify({
        'min_claim_area_sq_meters': cfg.get('MIN_CLAIM_AREA_SQ_METERS'),
        'respawn_delay_seconds': cfg.get('RESPAWN_DELAY_SECONDS'),
        'score_area_divisor': cfg.get('SCORE_AREA_DIVISOR'),
    })
