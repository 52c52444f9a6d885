from flask import request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from app.blueprints.auth import auth_bp
from app.exceptions import AuthenticationRequired, PermissionDenied
from app.models.auth import AdminUser
from app.utils.audit import log_action


@auth_bp.route('/csrf', methods=['GET'])
def csrf_token():
    """下发 CSRF token，客户端放在 X-CSRFToken 头中"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    username = (body.get('username') or '').strip()
    password = body.get('password') or ''

    user = AdminUser.query.filter_by(username=username).first()

    # 1. 验证用户存在
    if user is None:
        raise AuthenticationRequired('Invalid credentials')

    # 2. 检查账号是否被锁定
    if user.is_locked():
        raise PermissionDenied('Account temporarily locked, try again later')

    # 3. 验证密码
    if not user.verify_password(password):
        user.record_failed_login()
        raise AuthenticationRequired('Invalid credentials')

    # 4. 验证账号是否被停用
    if not user.active:
        raise PermissionDenied('Account disabled')

    # 5. 执行登录
    login_user(user)
    user.reset_failed_attempts()
    log_action('auth', 'login_success', {'username': user.username})

    return jsonify({
        'ok': True,
        'role': user.role,
        'username': user.username,
        'avatarUrl': user.avatar_url or '',
    })


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    log_action('auth', 'logout', {'username': current_user.username})
    logout_user()
    return jsonify({'ok': True})
