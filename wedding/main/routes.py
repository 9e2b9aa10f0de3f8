from flask import jsonify, Blueprint, current_app, send_from_directory

from wedding import db

bp = Blueprint('main', __name__)


@bp.route('/')
def index():
    return jsonify({"msg": "Welcome to the API!"}), 200


@bp.route('/health')
def health():
    db.session.execute(db.text('SELECT 1'))
    return jsonify({"ok": True}), 200


@bp.route('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
