from flask import Blueprint, request, jsonify
from .models import db, User, ROLES, ROLE_DEVELOPER
from flask_login import login_user, logout_user, login_required, current_user
from .services.voting.errors import Unauthenticated, ValidationError

main = Blueprint('main', __name__)

@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    if not data.get('email') or not data.get('password'):
        raise ValidationError("Email and password are required")
    user = User.query.filter_by(email=data['email'].strip().lower()).first()
    if user and user.check_password(data['password']):
        login_user(user)
        return jsonify({"success": True, "user": user.to_dict()})
    raise Unauthenticated("Invalid credentials")

@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    role = data.get('role') or ROLE_DEVELOPER
    if not all([name, email, password]):
        raise ValidationError("Name, email and password are required")
    if role not in ROLES:
        raise ValidationError(f"Role must be one of {list(ROLES)}")
    if User.query.filter_by(email=email).first():
        raise ValidationError("Email already registered")

    new_user = User(name=name, email=email, role=role)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    return jsonify({"success": True, "user": new_user.to_dict()}), 201

@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()

@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
