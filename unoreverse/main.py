from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from unoreverse import db
from unoreverse.models import User, Message

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the UNO Reverse game server!'})

@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    if not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400

    if User.query.filter_by(username=data['username']).first():
        return jsonify({'error': 'Username already exists'}), 400

    user = User(username=data['username'])
    user.set_password(data['password'])
    db.session.add(user)
    db.session.commit()
    login_user(user)

    return jsonify(user.to_dict()), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify(user.to_dict())
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})

@main.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())

@main.route('/messages')
@login_required
def inbox():
    messages = (
        Message.query.filter_by(recipient_id=str(current_user.id))
        .order_by(Message.created_at.desc())
        .all()
    )
    return jsonify([m.to_dict() for m in messages])
