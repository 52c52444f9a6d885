from flask import request, jsonify
from flask_login import login_required

from app.blueprints.upload import upload_bp
from app.exceptions import ValidationError
from app.extensions import asset_store
from app.utils.cloud_storage import AssetFolder, AVATAR_TRANSFORM
from app.utils.file_helper import has_file
from app.utils.permissions import admin_required


def _single_file():
    file = request.files.get('file')
    if not has_file(file):
        raise ValidationError('No file uploaded')
    return file


@upload_bp.route('/article', methods=['POST'])
@admin_required
def article_image():
    """上传单张文章图片，返回交付 URL（客户端随后随文章一起提交）"""
    asset = asset_store.upload(_single_file(), AssetFolder.ARTICLES)
    return jsonify({'url': asset.secure_url, **asset.to_dict()})


@upload_bp.route('/admin-user', methods=['POST'])
@login_required
def admin_user_avatar():
    """上传头像（300x300 人脸裁剪）"""
    asset = asset_store.upload(_single_file(), AssetFolder.ADMIN_USER, transform=AVATAR_TRANSFORM)
    return jsonify({'url': asset.secure_url, **asset.to_dict()})
