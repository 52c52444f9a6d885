from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app.blueprints.admin_user import admin_user_bp
from app.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from app.extensions import db, asset_store
from app.models.auth import AdminUser
from app.services.asset_cleanup_service import AssetCleanupService
from app.utils.audit import log_action
from app.utils.cloud_storage import AssetFolder, AVATAR_TRANSFORM
from app.utils.file_helper import has_file
from app.utils.image_helpers import extract_public_id
from app.utils.permissions import role_required, MANAGER_ROLES
from app.utils.validators import (
    validate_username, validate_email, validate_password, validate_role
)


def _upload_avatar():
    """表单中带了头像就先上传，返回 StoredAsset 或 None"""
    avatar = request.files.get('avatar')
    if not has_file(avatar):
        return None
    return asset_store.upload(avatar, AssetFolder.ADMIN_USER, transform=AVATAR_TRANSFORM)


def _commit_user(avatar):
    """提交账号写入；失败时刚上传的头像作废"""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        if avatar is not None:
            AssetCleanupService.discard_uploads([avatar], reason='write_failed')
        raise


@admin_user_bp.route('', methods=['GET'])
@role_required(*MANAGER_ROLES)
def index():
    """账号列表（不含密码）"""
    users = AdminUser.query.order_by(AdminUser.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users])


@admin_user_bp.route('/add', methods=['POST'])
@role_required(*MANAGER_ROLES)
def add():
    """新增账号 (multipart/form-data，avatar 可选)"""
    form = request.form
    username = validate_username(form.get('username'))
    email = validate_email(form.get('email'))
    password = validate_password(form.get('password'))
    role = validate_role(form.get('role'))
    active = (form.get('active') or 'true').lower() == 'true'

    # 只有超级管理员可以创建超级管理员
    if role == 'superadmin' and current_user.role != 'superadmin':
        raise PermissionDenied('Only a superadmin can create a superadmin')

    conditions = [AdminUser.username == username]
    if email:
        conditions.append(AdminUser.email == email)
    duplicate = AdminUser.query.filter(or_(*conditions)).first()
    if duplicate:
        raise Conflict('Username or email already exists')

    avatar = _upload_avatar()
    user = AdminUser(
        username=username,
        email=email,
        password=password,
        role=role,
        active=active,
        avatar_url=avatar.secure_url if avatar else '',
    )
    db.session.add(user)
    _commit_user(avatar)

    log_action('admin_user', 'create', {'username': username, 'role': role})
    return jsonify({'message': 'Admin user created', 'user': user.to_dict()}), 201


@admin_user_bp.route('/<int:user_id>/delete', methods=['DELETE', 'POST'])
@role_required(*MANAGER_ROLES)
def delete(user_id):
    """删除账号，头像在账号删除之后清理"""
    user = db.session.get(AdminUser, user_id)
    if user is None:
        raise NotFound('User not found')
    if user.id == current_user.id:
        raise ValidationError('You cannot delete your own account')

    username = user.username
    public_id = extract_public_id(user.avatar_url)
    pending = AssetCleanupService.schedule([public_id] if public_id else [], reason='user_delete')
    db.session.delete(user)
    db.session.commit()
    AssetCleanupService.process(pending)

    log_action('admin_user', 'delete', {'username': username})
    return jsonify({'message': 'User deleted successfully'})


@admin_user_bp.route('/profile', methods=['GET'])
@login_required
def profile():
    """当前登录账号信息"""
    return jsonify(current_user.to_dict())


@admin_user_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    """
    更新用户名 / 邮箱 / 头像 (multipart/form-data)
    新头像先上传，账号写入成功后再删除旧头像
    """
    user = current_user._get_current_object()
    form = request.form

    username = validate_username(form.get('username', user.username))
    email = validate_email(form.get('email', user.email or ''))

    if username != user.username and AdminUser.query.filter_by(username=username).first():
        raise Conflict('Username already exists')
    if email and email != (user.email or '') and AdminUser.query.filter_by(email=email).first():
        raise Conflict('Email already exists')

    avatar = _upload_avatar()
    pending = []
    if avatar is not None:
        old_public_id = extract_public_id(user.avatar_url)
        if old_public_id:
            pending = AssetCleanupService.schedule([old_public_id], reason='avatar_replace')
        user.avatar_url = avatar.secure_url

    user.username = username
    user.email = email
    _commit_user(avatar)
    AssetCleanupService.process(pending)

    return jsonify({'message': 'Profile updated', 'user': user.to_dict()})


@admin_user_bp.route('/profile/change-password', methods=['POST'])
@login_required
def change_password():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    current_password = body.get('currentPassword')
    new_password = body.get('newPassword')

    if not current_password or not new_password:
        raise ValidationError('currentPassword and newPassword are required')
    validate_password(new_password)

    if not current_user.verify_password(current_password):
        raise PermissionDenied('Current password is incorrect')

    current_user.password = new_password
    db.session.commit()
    log_action('admin_user', 'change_password', {'username': current_user.username})
    return jsonify({'message': 'Password updated'})
